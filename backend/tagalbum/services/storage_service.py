import asyncio
import base64
import binascii
import io
import logging
import os

from PIL import Image as PILImage, UnidentifiedImageError

from tagalbum.core.config import Settings, files_url
from tagalbum.core.exceptions import UploadError

logger = logging.getLogger(__name__)


def _decode_image(image_base64: str) -> PILImage.Image:
    """把 base64 字符串解码为 PIL 图片"""
    # 兼容 data URL 形式: data:image/png;base64,....
    if image_base64.startswith("data:") and "," in image_base64:
        image_base64 = image_base64.split(",", 1)[1]
    try:
        raw = base64.b64decode(image_base64, validate=True)
        image = PILImage.open(io.BytesIO(raw))
        image.load()
        return image
    except (binascii.Error, ValueError) as e:
        raise UploadError(f"Image data is not valid base64: {e}", status_code=400) from e
    except UnidentifiedImageError as e:
        raise UploadError("Image data is not a recognised image format", status_code=400) from e


class ImageStorage:
    """保存上传的图片，文件名使用图片在数据库中的 id"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.upload_dir = settings.UPLOAD_DIR

    def path_for(self, image_id: int) -> str:
        return os.path.join(self.upload_dir, f"{image_id}.png")

    def _write_png(self, image_base64: str, image_id: int) -> str:
        image = _decode_image(image_base64)
        if image.mode == "CMYK":
            # PNG 不支持 CMYK
            image = image.convert("RGB")
        file_path = self.path_for(image_id)
        try:
            os.makedirs(self.upload_dir, exist_ok=True)
            image.save(file_path, format="PNG")
        except OSError as e:
            # 写了一半的文件也要删掉
            self.discard(image_id)
            raise UploadError(f"Could not save image {image_id}: {e}") from e
        return file_path

    async def store(self, image_base64: str, image_id: int) -> str:
        # 解码和写文件放到线程里，避免阻塞事件循环
        write = asyncio.ensure_future(asyncio.to_thread(self._write_png, image_base64, image_id))
        try:
            file_path = await asyncio.shield(write)
        except asyncio.CancelledError:
            # 线程无法中断，等它写完后再删除文件
            write.add_done_callback(lambda _: self.discard(image_id))
            raise
        logger.info(f"Stored uploaded image {image_id} at {file_path}")
        # 返回的地址需要带上站点前缀
        return files_url(self.settings, f"{image_id}.png")

    def discard(self, image_id: int) -> None:
        """删除已保存的图片（事务回滚时调用），文件不存在时什么也不做"""
        file_path = self.path_for(image_id)
        try:
            os.remove(file_path)
            logger.info(f"Removed uploaded image {image_id} after rollback")
        except FileNotFoundError:
            pass
        except OSError as e:
            # 不能掩盖导致回滚的原始异常，这里只记录
            logger.warning(f"Could not remove {file_path}: {e}")
