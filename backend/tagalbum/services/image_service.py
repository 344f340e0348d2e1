# tagalbum/services/image_service.py
import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tagalbum.core.exceptions import StoreError
from tagalbum.repositories.image_repository import ImageRepository
from tagalbum.schemas.image import ImageBase64, ImageInput, ImageUrl
from tagalbum.services.storage_service import ImageStorage
from tagalbum.services.tag_service import resolve_tag_ids

logger = logging.getLogger(__name__)

# 上传的图片需要先拿到 id 才能确定最终地址，插入时先用占位值
PLACEHOLDER_URL = "temporary"


def generate_label(tags: Sequence[str]) -> str:
    """根据标签生成默认描述"""
    if not tags:
        return "An untagged image"
    return f"An image containing {', '.join(tags)}."


async def insert_image(
    db: AsyncSession,
    image_input: ImageInput,
    tags: List[str],
    label: Optional[str] = None,
    storage: Optional[ImageStorage] = None,
) -> int:
    """
    插入一张图片及其标签，返回新图片的 id。

    整个过程在一个事务中完成：不存在的标签会被创建，并通过 image_tags
    关联到图片；如果图片以 base64 提供，则在拿到 id 后上传并回填 URL。
    任何一步失败都会回滚全部修改。db 在调用前不能有未结束的事务。
    """
    if isinstance(image_input, ImageBase64) and storage is None:
        raise ValueError("An ImageStorage is required for base64 image input")

    repository = ImageRepository(db)
    upload_started = False
    try:
        async with repository.transaction():
            # 1. 解析标签 id（不存在则创建）
            tag_ids = await resolve_tag_ids(repository, tags)

            # 2. 写入图片
            url = image_input.url if isinstance(image_input, ImageUrl) else PLACEHOLDER_URL
            new_image = await repository.insert_image(
                label=label if label is not None else generate_label(tags),
                url=url,
            )

            # 3. 写入 image_tags 关联
            await repository.link_tags(new_image.id, list(tag_ids.values()))

            # 4. 有了 id 之后再保存上传的图片，并回填 URL
            if isinstance(image_input, ImageBase64):
                upload_started = True
                final_url = await storage.store(image_input.data, new_image.id)
                await repository.update_image_url(new_image, final_url)
    except BaseException as e:
        # 数据库已回滚，磁盘上的图片也不能留下
        if upload_started:
            storage.discard(new_image.id)
        if isinstance(e, SQLAlchemyError):
            logger.error(f"Image insert rolled back: {e}")
            raise StoreError.wrap("inserting image", e) from e
        raise

    logger.info(f"Created image {new_image.id} with {len(tag_ids)} tag(s)")
    return new_image.id
