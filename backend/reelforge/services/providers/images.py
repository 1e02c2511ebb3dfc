"""
Image acquisition capability

Two backends behind one interface:
    - segmind: SDXL text-to-image (ai-generated)
    - pexels: stock photo search and download (stock)

Either way the file written to the project image directory is resized and
center-cropped to the exact output resolution for the aspect ratio.
"""

import asyncio
import base64
import binascii
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from ...config import ASPECT_RATIO_DIMENSIONS, DEFAULT_ASPECT_RATIO, PROVIDER_TIMEOUTS
from ...core import NoProviderAvailableError, ProviderError, ProviderTimeoutError, get_logger
from ...models import ImageSource
from .credentials import Backend, CredentialStore
from .parsing import response_json

logger = get_logger(__name__, component="images")


class ImageBackend(str, Enum):
    SEGMIND = "segmind"
    PEXELS = "pexels"


@dataclass
class AcquiredImage:
    path: str
    source: ImageSource


def dimensions_for(aspect_ratio: str) -> Tuple[int, int]:
    return ASPECT_RATIO_DIMENSIONS.get(aspect_ratio, ASPECT_RATIO_DIMENSIONS[DEFAULT_ASPECT_RATIO])


def fit_image(data: bytes, width: int, height: int, output_path: Path) -> Path:
    """Scale and center-crop image bytes to exactly width x height.

    Raises:
        ProviderError: If the bytes are not a readable image
    """
    try:
        with Image.open(BytesIO(data)) as image:
            fitted = ImageOps.fit(image.convert("RGB"), (width, height), method=Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, OSError) as e:
        raise ProviderError(f"Backend returned an unreadable image: {e}") from e
    fitted.save(output_path)
    return output_path


class ImageProvider(ABC):
    backend: ImageBackend
    source: ImageSource

    @abstractmethod
    async def fetch(self, prompt: str, width: int, height: int) -> Tuple[bytes, str]:
        """Return raw image bytes and the file extension to store them under"""
        pass

    async def acquire(self, prompt: str, aspect_ratio: str, output_dir: Path) -> AcquiredImage:
        width, height = dimensions_for(aspect_ratio)
        data, extension = await self.fetch(prompt, width, height)
        output_path = output_dir / f"{uuid.uuid4()}{extension}"
        await asyncio.to_thread(fit_image, data, width, height, output_path)
        return AcquiredImage(path=str(output_path), source=self.source)


class SegmindImageProvider(ImageProvider):
    backend = ImageBackend.SEGMIND
    source = ImageSource.AI_GENERATED

    API_URL = "https://api.segmind.com/v1/sdxl1.0-txt2img"
    NEGATIVE_PROMPT = "blurry, low quality, distorted, watermark, text, logo, deformed"
    # SDXL-native sizes closest to each output shape
    GENERATION_SIZES = {
        "portrait": (768, 1344),
        "landscape": (1344, 768),
        "square": (1024, 1024),
    }

    def __init__(self, api_key: str, timeout: Optional[float] = None):
        self.api_key = api_key
        self.timeout = timeout or PROVIDER_TIMEOUTS.image_generation

    def _generation_size(self, width: int, height: int) -> Tuple[int, int]:
        if height > width:
            return self.GENERATION_SIZES["portrait"]
        if width > height:
            return self.GENERATION_SIZES["landscape"]
        return self.GENERATION_SIZES["square"]

    async def fetch(self, prompt: str, width: int, height: int) -> Tuple[bytes, str]:
        gen_width, gen_height = self._generation_size(width, height)
        payload = {
            "prompt": prompt,
            "negative_prompt": self.NEGATIVE_PROMPT,
            "samples": 1,
            "scheduler": "UniPC",
            "num_inference_steps": 25,
            "guidance_scale": 8,
            "img_width": gen_width,
            "img_height": gen_height,
            "refiner": True,
            "base64": True,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.API_URL, json=payload, headers={"x-api-key": self.api_key})
                response.raise_for_status()
                data = response_json(response, "Segmind", backend=self.backend.value)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("Segmind image generation timed out", backend=self.backend.value) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Segmind image generation failed: {e}", backend=self.backend.value) from e

        encoded = data.get("image") or (data.get("images") or [None])[0]
        if not encoded:
            raise ProviderError("Segmind response contained no image", backend=self.backend.value)
        try:
            return base64.b64decode(encoded), ".png"
        except (binascii.Error, ValueError) as e:
            raise ProviderError("Segmind returned invalid base64 image data", backend=self.backend.value) from e


class PexelsImageProvider(ImageProvider):
    backend = ImageBackend.PEXELS
    source = ImageSource.STOCK

    SEARCH_URL = "https://api.pexels.com/v1/search"
    RESULTS_PER_PAGE = 5

    def __init__(self, api_key: str, timeout: Optional[float] = None, download_timeout: Optional[float] = None):
        self.api_key = api_key
        self.timeout = timeout or PROVIDER_TIMEOUTS.web_search
        self.download_timeout = download_timeout or PROVIDER_TIMEOUTS.image_download

    @staticmethod
    def orientation(width: int, height: int) -> str:
        if height > width:
            return "portrait"
        if width > height:
            return "landscape"
        return "square"

    async def fetch(self, prompt: str, width: int, height: int) -> Tuple[bytes, str]:
        params = {
            "query": prompt[:200],
            "per_page": self.RESULTS_PER_PAGE,
            "orientation": self.orientation(width, height),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.SEARCH_URL, params=params, headers={"Authorization": self.api_key})
                response.raise_for_status()
                photos = response_json(response, "Pexels", backend=self.backend.value).get("photos") or []
                if not photos:
                    raise ProviderError(f"No stock photos found for: {prompt[:80]}", backend=self.backend.value)

                src = photos[0].get("src") or {}
                url = src.get("large2x") or src.get("original") or src.get("large")
                if not url:
                    raise ProviderError("Stock photo has no downloadable source", backend=self.backend.value)

                download = await client.get(url, timeout=self.download_timeout, follow_redirects=True)
                download.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("Stock photo request timed out", backend=self.backend.value) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Stock photo request failed: {e}", backend=self.backend.value) from e

        return download.content, ".jpg"


# Backend -> (credential name, human-readable key name, constructor)
IMAGE_PROVIDER_TABLE: Dict[ImageBackend, Tuple[str, str, Callable[[str], ImageProvider]]] = {
    ImageBackend.SEGMIND: (Backend.SEGMIND, "Segmind API key required for AI image generation", SegmindImageProvider),
    ImageBackend.PEXELS: (Backend.PEXELS, "Pexels API key required for stock photos", PexelsImageProvider),
}


def parse_image_backend(value: str) -> ImageBackend:
    """Raises ValueError for unknown backends."""
    try:
        return ImageBackend(value.lower())
    except ValueError:
        raise ValueError(f"Unknown image backend: {value}")


def missing_image_credential(backend: ImageBackend, credentials: CredentialStore) -> Optional[str]:
    """Precondition message when the backend's credential is missing, else None."""
    credential_name, message, _ = IMAGE_PROVIDER_TABLE[backend]
    return None if credentials.has(credential_name) else message


def get_image_provider(backend: ImageBackend, credentials: CredentialStore) -> ImageProvider:
    credential_name, message, build = IMAGE_PROVIDER_TABLE[backend]
    credential = credentials.get(credential_name)
    if not credential:
        raise NoProviderAvailableError(message, backend=backend.value)
    return build(credential)


async def acquire_scene_image(
    prompt: str,
    aspect_ratio: str,
    backend: ImageBackend,
    credentials: CredentialStore,
    output_dir: Path,
) -> AcquiredImage:
    """acquireSceneImage: one image file sized for the aspect ratio."""
    provider = get_image_provider(backend, credentials)
    return await provider.acquire(prompt, aspect_ratio, output_dir)
