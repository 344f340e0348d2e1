from functools import lru_cache

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from tagalbum.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    PROJECT_NAME: str = "TagAlbum"
    DATABASE_URL: str
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    # Imagga 物体识别
    IMAGGA_API_KEY: str
    IMAGGA_API_SECRET: str
    IMAGGA_API_URL: str = "https://api.imagga.com/v2/tags"
    IMAGGA_TIMEOUT: float = 30.0

    # 上传图片的存储位置与对外访问路径
    UPLOAD_DIR: str = "uploaded_files"
    FILES_ROUTE: str = "/files"
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    class Config:
        env_file = ".env"


def load_settings(**overrides) -> Settings:
    """读取并校验配置，缺失字段统一转换为 ConfigurationError"""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        raise ConfigurationError(fields) from e


@lru_cache()
def get_settings() -> Settings:
    return load_settings()


def files_url(settings: Settings, filename: str) -> str:
    """拼接上传文件的对外访问地址"""
    base = settings.PUBLIC_BASE_URL.rstrip("/")
    route = "/" + settings.FILES_ROUTE.strip("/")
    return f"{base}{route}/{filename}"
