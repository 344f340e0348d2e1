# tagalbum/services/tag_service.py
import logging
from typing import Dict, Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tagalbum.core.exceptions import StoreError
from tagalbum.repositories.image_repository import ImageRepository

logger = logging.getLogger(__name__)


async def resolve_tag_id(repository: ImageRepository, name: str) -> int:
    """
    同名标签（区分大小写）已存在则返回其 id，否则插入新标签并返回新 id。

    必须在调用方的事务中执行，外层操作失败时新建的标签会一起回滚。
    """
    try:
        existing = await repository.get_tag_by_name(name)
        if existing is not None:
            return existing.id

        try:
            tag = await repository.add_tag(name)
            logger.info(f"Created tag '{name}' (id={tag.id})")
            return tag.id
        except IntegrityError:
            # 并发事务抢先插入了同名标签：唯一约束拒绝本次插入，改为重新查询
            logger.warning(f"Tag '{name}' was created concurrently, reading it back")
            existing = await repository.get_tag_by_name(name)
            if existing is None:
                raise
            return existing.id
    except SQLAlchemyError as e:
        raise StoreError.wrap(f"resolving tag '{name}'", e) from e


async def resolve_tag_ids(repository: ImageRepository, names: Iterable[str]) -> Dict[str, int]:
    """
    每个不同的标签名只解析一次，保留首次出现的顺序。

    同一个 AsyncSession 不能被多个协程并发使用，所以逐个 await；
    第一个失败直接抛出，后面的不再执行。
    """
    resolved: Dict[str, int] = {}
    for name in names:
        if name not in resolved:
            resolved[name] = await resolve_tag_id(repository, name)
    return resolved
