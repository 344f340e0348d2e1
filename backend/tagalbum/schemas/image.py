from enum import Enum
from pydantic import BaseModel
from typing import List, Optional, Union

from tagalbum.core.exceptions import InvalidInputError


class ImageResult(BaseModel):
    id: int
    url: str
    label: str
    tags: List[str] = []

    class Config:
        from_attributes = True


class NewImageRequest(BaseModel):
    image_url: Optional[str] = None
    image_base64: Optional[str] = None
    label: Optional[str] = None
    object_detection: bool = False

    def to_image_input(self) -> "ImageInput":
        # URL 与 base64 必须二选一
        if (self.image_url is None) == (self.image_base64 is None):
            raise InvalidInputError("Expected an image URL or base64 encoded image (not both)")
        if self.image_url is not None:
            return ImageUrl(url=self.image_url)
        return ImageBase64(data=self.image_base64)


# --- 图片来源 ---
class ImageUrl(BaseModel):
    url: str


class ImageBase64(BaseModel):
    data: str


ImageInput = Union[ImageUrl, ImageBase64]


# --- 标签过滤条件 ---
class FilterMode(str, Enum):
    NONE = "none"
    ANY = "any"
    ALL = "all"


class TagFilter(BaseModel):
    mode: FilterMode = FilterMode.NONE
    names: List[str] = []

    @classmethod
    def none(cls) -> "TagFilter":
        return cls()

    @classmethod
    def any_of(cls, names: List[str]) -> "TagFilter":
        return cls(mode=FilterMode.ANY, names=list(names))

    @classmethod
    def all_of(cls, names: List[str]) -> "TagFilter":
        return cls(mode=FilterMode.ALL, names=list(names))

    def distinct_names(self) -> List[str]:
        """去重后的标签名，保留首次出现的顺序"""
        return list(dict.fromkeys(self.names))

    @property
    def is_unconstrained(self) -> bool:
        # 空标签列表视为不加限制，与 NONE 等价
        return self.mode == FilterMode.NONE or not self.names
