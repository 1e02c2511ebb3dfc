import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reelforge.core.media import get_media_duration


def _process(stdout: bytes):
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, b""))
    return process


class TestGetMediaDuration:
    @pytest.mark.asyncio
    async def test_parses_ffprobe_output(self):
        with patch.object(asyncio, "create_subprocess_exec", AsyncMock(return_value=_process(b"40.000000\n"))) as spawn:
            assert await get_media_duration("voice.mp3") == 40.0
        assert spawn.call_args.args[-1] == "voice.mp3"

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        with patch.object(asyncio, "create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("ffprobe"))):
            assert await get_media_duration("voice.mp3") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stdout", [b"N/A\n", b"", b"0.0\n"])
    async def test_unusable_output(self, stdout):
        with patch.object(asyncio, "create_subprocess_exec", AsyncMock(return_value=_process(stdout))):
            assert await get_media_duration("voice.mp3") is None
