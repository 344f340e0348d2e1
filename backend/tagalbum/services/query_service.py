# tagalbum/services/query_service.py
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tagalbum.core.exceptions import ImageNotFoundError, StoreError
from tagalbum.models.image import Image
from tagalbum.repositories.image_repository import ImageRepository
from tagalbum.schemas.image import FilterMode, ImageResult, TagFilter

logger = logging.getLogger(__name__)


def to_result(image: Image) -> ImageResult:
    return ImageResult(
        id=image.id,
        url=image.url,
        label=image.label,
        tags=[tag.name for tag in image.tags],
    )


async def query_image_by_id(db: AsyncSession, image_id: int) -> ImageResult:
    repository = ImageRepository(db)
    try:
        image = await repository.find_by_id(image_id)
    except SQLAlchemyError as e:
        raise StoreError.wrap(f"loading image {image_id}", e) from e

    if image is None:
        raise ImageNotFoundError(image_id)
    return to_result(image)


async def query_images(db: AsyncSession, tag_filter: Optional[TagFilter] = None) -> List[ImageResult]:
    """
    按标签条件查询图片。

    - NONE: 返回全部图片
    - ANY:  至少包含一个指定标签
    - ALL:  包含全部指定标签（可以有额外标签）

    筛选在数据库里用 GROUP BY / HAVING 完成，不把全部图片读进内存。
    空标签列表等同于不加条件。返回顺序不作保证。
    """
    tag_filter = tag_filter or TagFilter.none()
    repository = ImageRepository(db)

    image_ids = None
    if not tag_filter.is_unconstrained:
        names = tag_filter.distinct_names()
        if tag_filter.mode == FilterMode.ALL:
            image_ids = repository.ids_with_all_tags(names)
        else:
            image_ids = repository.ids_with_any_tag(names)
    logger.debug(f"Querying images with filter {tag_filter.mode.value} {tag_filter.names}")

    try:
        images = await repository.find_with_tags(image_ids)
    except SQLAlchemyError as e:
        raise StoreError.wrap("querying images", e) from e
    return [to_result(image) for image in images]
