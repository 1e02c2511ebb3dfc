"""
Transcription capability

AssemblyAI: upload the audio, create a transcript job and poll it until it
completes. Polling is capped (TRANSCRIPTION_MAX_POLLS x poll interval) and
ends in ProviderTimeoutError instead of waiting forever.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from ...config import PROVIDER_TIMEOUTS
from ...core import ProviderError, ProviderTimeoutError, get_logger
from ...models import Transcript, TranscriptSegment, TranscriptWord
from .parsing import response_json

logger = get_logger(__name__, component="transcription")

_SENTENCE_END = (".", "?", "!")


def segments_from_words(words: List[TranscriptWord]) -> List[TranscriptSegment]:
    """Group words into sentence-level segments at terminal punctuation."""
    segments: List[TranscriptSegment] = []
    current: List[TranscriptWord] = []
    for word in words:
        current.append(word)
        if word.text.rstrip("\"')").endswith(_SENTENCE_END):
            segments.append(_segment(current))
            current = []
    if current:
        segments.append(_segment(current))
    return segments


def _segment(words: List[TranscriptWord]) -> TranscriptSegment:
    return TranscriptSegment(
        text=" ".join(w.text for w in words),
        start=words[0].start,
        end=words[-1].end,
    )


class AssemblyAITranscriber:
    """transcribe(audioPath) -> Transcript with word-level timing in seconds"""

    API_BASE = "https://api.assemblyai.com/v2"
    SPEECH_MODEL = "universal"

    def __init__(
        self,
        api_key: str,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout or PROVIDER_TIMEOUTS.transcription_request
        self.poll_interval = poll_interval if poll_interval is not None else PROVIDER_TIMEOUTS.transcription_poll_interval
        self.max_polls = max_polls or PROVIDER_TIMEOUTS.transcription_max_polls

    @property
    def _headers(self) -> Dict[str, str]:
        return {"authorization": self.api_key}

    async def _upload(self, client: httpx.AsyncClient, audio_path: str) -> str:
        data = await asyncio.to_thread(Path(audio_path).read_bytes)
        response = await client.post(f"{self.API_BASE}/upload", content=data, headers=self._headers)
        response.raise_for_status()
        upload_url = response_json(response, "AssemblyAI", backend="assemblyai").get("upload_url")
        if not upload_url:
            raise ProviderError("AssemblyAI upload returned no URL", backend="assemblyai")
        return upload_url

    async def _poll(self, client: httpx.AsyncClient, transcript_id: str) -> Dict[str, Any]:
        for _ in range(self.max_polls):
            response = await client.get(f"{self.API_BASE}/transcript/{transcript_id}", headers=self._headers)
            response.raise_for_status()
            data = response_json(response, "AssemblyAI", backend="assemblyai")
            status = data.get("status")
            if status == "completed":
                return data
            if status == "error":
                raise ProviderError(f"Transcription failed: {data.get('error') or 'unknown error'}", backend="assemblyai")
            await asyncio.sleep(self.poll_interval)

        raise ProviderTimeoutError(
            f"Transcription did not complete after {self.max_polls} polls",
            backend="assemblyai",
        )

    @staticmethod
    def parse_transcript(data: Dict[str, Any]) -> Transcript:
        words = [
            TranscriptWord(
                text=str(w.get("text", "")),
                start=float(w.get("start", 0)) / 1000,
                end=float(w.get("end", 0)) / 1000,
                confidence=w.get("confidence"),
            )
            for w in data.get("words") or []
            if w.get("text")
        ]
        return Transcript(
            full_text=data.get("text") or "",
            words=words,
            segments=segments_from_words(words),
        )

    async def transcribe(self, audio_path: str) -> Transcript:
        """Transcribe an audio file.

        Raises:
            ProviderError: On API failure or a failed transcript
            ProviderTimeoutError: When polling exceeds the cap
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                audio_url = await self._upload(client, audio_path)
                response = await client.post(
                    f"{self.API_BASE}/transcript",
                    json={"audio_url": audio_url, "speech_model": self.SPEECH_MODEL, "punctuate": True},
                    headers=self._headers,
                )
                response.raise_for_status()
                transcript_id = response_json(response, "AssemblyAI", backend="assemblyai").get("id")
                if not transcript_id:
                    raise ProviderError("AssemblyAI returned no transcript id", backend="assemblyai")
                data = await self._poll(client, transcript_id)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("AssemblyAI request timed out", backend="assemblyai") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"AssemblyAI request failed: {e}", backend="assemblyai") from e

        transcript = self.parse_transcript(data)
        logger.info("Transcription complete", extra={"word_count": len(transcript.words)})
        return transcript
