"""
Scene video capability

Image-to-video clips through Replicate's minimax/video-01 model. A prediction
is created with the scene image as first frame, polled until it settles (with
a hard cap on polls) and the resulting clip is downloaded into the project's
video directory.
"""

import asyncio
import base64
import mimetypes
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ...config import PROVIDER_TIMEOUTS
from ...core import ProviderError, ProviderTimeoutError, get_logger
from .parsing import response_json

logger = get_logger(__name__, component="scene_video")

SUPPORTED_RESOLUTIONS = ("480p", "720p")


def _image_data_uri(image_path: str) -> str:
    mime = mimetypes.guess_type(image_path)[0] or "image/png"
    encoded = base64.b64encode(Path(image_path).read_bytes()).decode("ascii")
    return f"data:{mime};base64,{encoded}"


class ReplicateVideoProvider:
    """acquireSceneVideo via a Replicate prediction"""

    API_BASE = "https://api.replicate.com/v1"
    MODEL = "minimax/video-01"
    TERMINAL_STATES = {"succeeded", "failed", "canceled"}

    def __init__(
        self,
        api_token: str,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
    ):
        self.api_token = api_token
        self.timeout = timeout or PROVIDER_TIMEOUTS.video_request
        self.poll_interval = poll_interval if poll_interval is not None else PROVIDER_TIMEOUTS.video_poll_interval
        self.max_polls = max_polls or PROVIDER_TIMEOUTS.video_max_polls

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_token}"}

    async def _create_prediction(self, client: httpx.AsyncClient, image_path: str, prompt: str) -> Dict[str, Any]:
        image_uri = await asyncio.to_thread(_image_data_uri, image_path)
        payload = {
            "input": {
                "prompt": prompt,
                "prompt_optimizer": True,
                "first_frame_image": image_uri,
            }
        }
        response = await client.post(f"{self.API_BASE}/models/{self.MODEL}/predictions", json=payload, headers=self._headers)
        response.raise_for_status()
        return response_json(response, "Replicate", backend="replicate")

    async def _wait_for_prediction(self, client: httpx.AsyncClient, prediction: Dict[str, Any]) -> Dict[str, Any]:
        prediction_id = prediction.get("id")
        for _ in range(self.max_polls):
            if prediction.get("status") in self.TERMINAL_STATES:
                return prediction
            await asyncio.sleep(self.poll_interval)
            response = await client.get(f"{self.API_BASE}/predictions/{prediction_id}", headers=self._headers)
            response.raise_for_status()
            prediction = response_json(response, "Replicate", backend="replicate")

        if prediction.get("status") in self.TERMINAL_STATES:
            return prediction
        raise ProviderTimeoutError(
            f"Scene video generation did not finish after {self.max_polls} polls",
            backend="replicate",
        )

    @staticmethod
    def _output_url(prediction: Dict[str, Any]) -> str:
        output = prediction.get("output")
        if isinstance(output, list):
            output = output[0] if output else None
        if not isinstance(output, str) or not output:
            raise ProviderError(f"Replicate did not return a video URL: {output!r}", backend="replicate")
        return output

    async def acquire_scene_video(
        self,
        scene_id: str,
        image_path: str,
        narration_text: str,
        output_dir: Path,
        resolution: str = "720p",
    ) -> str:
        """Generate a clip for one scene and return its local path.

        minimax/video-01 always renders 720p; the resolution is recorded for
        logging and validated only.

        Raises:
            ProviderError: On API failure or a failed prediction
            ProviderTimeoutError: When polling exceeds the cap
        """
        if resolution not in SUPPORTED_RESOLUTIONS:
            raise ValueError(f"Unsupported resolution: {resolution}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                prediction = await self._create_prediction(client, image_path, narration_text)
                prediction = await self._wait_for_prediction(client, prediction)

                if prediction.get("status") != "succeeded":
                    raise ProviderError(
                        f"Scene video generation {prediction.get('status')}: {prediction.get('error') or 'unknown error'}",
                        backend="replicate",
                    )

                download = await client.get(self._output_url(prediction), follow_redirects=True)
                download.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("Replicate request timed out", backend="replicate") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Replicate request failed: {e}", backend="replicate") from e

        output_path = output_dir / f"scene-video-{scene_id}-{uuid.uuid4()}.mp4"
        await asyncio.to_thread(output_path.write_bytes, download.content)
        logger.info("Scene clip generated", extra={
            "scene_id": scene_id,
            "resolution": resolution,
            "path": str(output_path),
        })
        return str(output_path)
