# tagalbum/repositories/image_repository.py
"""
图片与标签的数据访问层。

业务逻辑只通过这个类访问数据库，不直接写查询。
所有方法都在调用方的 session 中执行，不会自己提交。
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy import Select, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tagalbum.models.image import Image, Tag, image_tag

logger = logging.getLogger(__name__)


class ImageRepository:
    """images、tags 以及 image_tags 关联表的数据访问"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def transaction(self):
        """
        开启写操作的事务，用法: ``async with repository.transaction():``

        正常退出时提交；任何异常（包括任务被取消）都会回滚全部修改。
        """
        return self.session.begin()

    # --- tags ---

    async def get_tag_by_name(self, name: str) -> Optional[Tag]:
        result = await self.session.execute(select(Tag).where(Tag.name == name))
        return result.scalars().first()

    async def add_tag(self, name: str) -> Tag:
        """
        在 SAVEPOINT 中插入标签。

        违反唯一约束时只回滚这个 savepoint，外层事务仍然可用；IntegrityError 会继续抛出。
        """
        tag = Tag(name=name)
        async with self.session.begin_nested():
            self.session.add(tag)
            await self.session.flush()
        return tag

    # --- images ---

    async def insert_image(self, label: str, url: str) -> Image:
        image = Image(label=label, url=url)
        self.session.add(image)
        await self.session.flush()
        return image

    async def link_tags(self, image_id: int, tag_ids: Sequence[int]) -> None:
        if not tag_ids:
            return
        # 一条多行 INSERT 写入全部关联
        rows = [{"image_id": image_id, "tag_id": tag_id} for tag_id in tag_ids]
        await self.session.execute(insert(image_tag).values(rows))
        logger.debug(f"Linked image {image_id} to tags {list(tag_ids)}")

    async def update_image_url(self, image: Image, url: str) -> None:
        image.url = url
        await self.session.flush()

    async def find_by_id(self, image_id: int) -> Optional[Image]:
        stmt = (
            select(Image)
            .where(Image.id == image_id)
            .options(selectinload(Image.tags))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_with_tags(self, image_ids: Optional[Select] = None) -> List[Image]:
        """
        加载图片并预加载其标签。

        Args:
            image_ids: 可选，只有一列 image id 的 select；给出时只加载这些图片
        """
        # 使用 selectinload 预加载 tags 防止 N+1 问题
        stmt = (
            select(Image)
            .options(selectinload(Image.tags))
            .execution_options(populate_existing=True)
            .order_by(Image.id)
        )
        if image_ids is not None:
            stmt = stmt.where(Image.id.in_(image_ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # --- tag predicates ---

    @staticmethod
    def ids_with_any_tag(names: Sequence[str]) -> Select:
        return (
            select(image_tag.c.image_id)
            .join(Tag, Tag.id == image_tag.c.tag_id)
            .where(Tag.name.in_(names))
            .distinct()
        )

    @staticmethod
    def ids_with_all_tags(names: Sequence[str]) -> Select:
        """
        包含 ``names`` 中全部标签的图片 id。

        WHERE 只保留被请求的标签，所以每组的行数就是命中的标签数，
        图片的其它标签不会被计入。``names`` 必须已经去重。
        """
        return (
            select(image_tag.c.image_id)
            .join(Tag, Tag.id == image_tag.c.tag_id)
            .where(Tag.name.in_(names))
            .group_by(image_tag.c.image_id)
            .having(func.count(Tag.id) == len(names))
        )
