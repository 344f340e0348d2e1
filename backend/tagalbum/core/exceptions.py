# tagalbum/core/exceptions.py
"""
TagAlbum 的错误分类。

每个异常都带有一个 ErrorKind，路由层据此映射为 HTTP 状态码：
    NOT_FOUND      -> 404
    INVALID_INPUT  -> 400
    STORE          -> 500
    COLLABORATOR   -> 第三方服务返回的 4xx，或 502
    CONFIGURATION  -> 启动失败
"""
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    STORE = "store"
    COLLABORATOR = "collaborator"
    CONFIGURATION = "configuration"


class TagAlbumError(Exception):
    """所有 TagAlbum 异常的基类"""

    kind: ErrorKind = ErrorKind.STORE

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.kind.value,
            "detail": self.message,
            **({"details": self.details} if self.details else {}),
        }


class ImageNotFoundError(TagAlbumError):
    """请求的图片不存在"""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, image_id: int):
        self.image_id = image_id
        super().__init__(f"No image found with id {image_id}", {"image_id": image_id})


class InvalidInputError(TagAlbumError):
    kind = ErrorKind.INVALID_INPUT


class StoreError(TagAlbumError):
    """数据库/事务层错误，原始异常保存在 __cause__ 中"""

    kind = ErrorKind.STORE

    @classmethod
    def wrap(cls, operation: str, exc: Exception) -> "StoreError":
        return cls(f"Database error while {operation}: {exc}", {"operation": operation})


class CollaboratorError(TagAlbumError):
    """外部服务（物体识别、图片存储）出错"""

    kind = ErrorKind.COLLABORATOR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class DetectionError(CollaboratorError):
    pass


class UploadError(CollaboratorError):
    pass


class ConfigurationError(TagAlbumError):
    """启动时必需的配置缺失或无效"""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, fields: List[str]):
        self.fields = fields
        super().__init__(
            "Missing or invalid configuration: " + ", ".join(fields),
            {"fields": fields},
        )
