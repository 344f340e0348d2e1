import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from tagalbum.core.config import Settings
from tagalbum.core.exceptions import DetectionError
from tagalbum.schemas.image import ImageInput, ImageUrl

logger = logging.getLogger(__name__)


# --- Imagga 响应结构（只保留需要的字段） ---
class ImaggaTagTranslations(BaseModel):
    en: str


class ImaggaTag(BaseModel):
    confidence: float = 0.0
    tag: ImaggaTagTranslations


class ImaggaTaggingResult(BaseModel):
    tags: List[ImaggaTag] = []


class ImaggaStatus(BaseModel):
    text: str = ""
    type: str = ""


class ImaggaTaggingResponse(BaseModel):
    # 失败的响应没有 result，但 status 里有错误信息
    result: Optional[ImaggaTaggingResult] = None
    status: ImaggaStatus = ImaggaStatus()


class ImaggaClient:
    """调用 Imagga 识别图片中的物体，返回英文标签列表"""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        api_url: str = "https://api.imagga.com/v2/tags",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.auth = httpx.BasicAuth(api_key, api_secret)
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImaggaClient":
        return cls(
            settings.IMAGGA_API_KEY,
            settings.IMAGGA_API_SECRET,
            api_url=settings.IMAGGA_API_URL,
            timeout=settings.IMAGGA_TIMEOUT,
        )

    async def detect(self, image_input: ImageInput) -> List[str]:
        async with httpx.AsyncClient(
            auth=self.auth, timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                if isinstance(image_input, ImageUrl):
                    response = await client.get(self.api_url, params={"image_url": image_input.url})
                else:
                    response = await client.post(self.api_url, data={"image_base64": image_input.data})
            except httpx.HTTPError as e:
                # Imagga 完全不可用或网络出错
                logger.error(f"Request to Imagga failed: {e}")
                raise DetectionError(f"Error while making request to Imagga: {e}", status_code=502) from e

        if response.is_error:
            raise self._status_error(response)

        try:
            body = ImaggaTaggingResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DetectionError(
                f"Received {response.status_code} response from Imagga but could not deserialize: {e}",
                status_code=502,
            ) from e

        if body.result is None:
            raise DetectionError(
                f"Received {response.status_code} response from Imagga but with missing result",
                status_code=502,
            )
        tags = [tag.tag.en for tag in body.result.tags]
        logger.info(f"Imagga detected {len(tags)} tag(s)")
        return tags

    @staticmethod
    def _status_error(response: httpx.Response) -> DetectionError:
        try:
            error_text = ImaggaTaggingResponse.model_validate(response.json()).status.text
        except (ValueError, ValidationError):
            error_text = response.text
        # 4xx 原样转发（比如图片地址无效），其它情况视为上游故障
        status_code = response.status_code if 400 <= response.status_code < 500 else 502
        logger.warning(f"Imagga returned {response.status_code}: {error_text}")
        return DetectionError(
            f"Received error {response.status_code} from Imagga: {error_text}",
            status_code=status_code,
        )
