from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from tagalbum.core.config import Settings
from tagalbum.core.exceptions import InvalidInputError
from tagalbum.db.database import get_db
from tagalbum.schemas.image import ImageResult, NewImageRequest, TagFilter
from tagalbum.services import image_service, query_service
from tagalbum.services.imagga_client import ImaggaClient
from tagalbum.services.storage_service import ImageStorage

router = APIRouter()


def get_app_settings(request: Request) -> Settings:
    # 启动时已校验过的配置
    return request.app.state.settings


def get_detector(settings: Settings = Depends(get_app_settings)) -> ImaggaClient:
    return ImaggaClient.from_settings(settings)


def get_storage(settings: Settings = Depends(get_app_settings)) -> ImageStorage:
    return ImageStorage(settings)


def _split_objects(objects: str) -> List[str]:
    # 逗号分隔的标签列表，忽略空项；名称按原样匹配
    return [name for name in objects.split(",") if name]


@router.post("/images", response_model=ImageResult)
async def post_image(
    payload: NewImageRequest,
    db: AsyncSession = Depends(get_db),
    detector: ImaggaClient = Depends(get_detector),
    storage: ImageStorage = Depends(get_storage),
):
    image_input = payload.to_image_input()

    # 不需要识别时使用空标签列表
    tags = await detector.detect(image_input) if payload.object_detection else []

    image_id = await image_service.insert_image(
        db, image_input, tags, label=payload.label, storage=storage
    )
    return await query_service.query_image_by_id(db, image_id)


@router.get("/images", response_model=List[ImageResult])
async def get_images(
    objects: Optional[str] = None,
    some_objects: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    objects: 包含列表中全部标签的图片
    some_objects: 至少包含列表中一个标签的图片
    """
    if objects is not None and some_objects is not None:
        raise InvalidInputError("Cannot specify both an objects list and a some_objects list")

    if objects is not None:
        tag_filter = TagFilter.all_of(_split_objects(objects))
    elif some_objects is not None:
        tag_filter = TagFilter.any_of(_split_objects(some_objects))
    else:
        tag_filter = TagFilter.none()
    return await query_service.query_images(db, tag_filter)


@router.get("/image/{image_id}", response_model=ImageResult)
async def get_image_by_id(image_id: int, db: AsyncSession = Depends(get_db)):
    return await query_service.query_image_by_id(db, image_id)
