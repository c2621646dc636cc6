"""ffmpeg-backed encoder: extracts the audio track to MP3."""

import asyncio
import contextlib
import json
import os
from collections import deque
from typing import AsyncIterator, List, Optional

from audioextract.encoder.base import (
    Encoder,
    EncoderEvent,
    FailureEvent,
    ProgressEvent,
    SuccessEvent,
)

# Lines of stderr kept for the failure message
_STDERR_TAIL = 5


def parse_progress_line(line: str, duration: Optional[float]) -> Optional[ProgressEvent]:
    """Turn one `-progress` key=value line into a ProgressEvent.

    Only out_time_us / out_time_ms produce events (ffmpeg reports both in
    microseconds). Returns None for every other key.
    """
    key, sep, value = line.strip().partition("=")
    if not sep or key not in ("out_time_us", "out_time_ms"):
        return None
    if not duration:
        return ProgressEvent(percent=None)
    try:
        seconds = int(value) / 1_000_000
    except ValueError:
        # "N/A" before the first frame
        return ProgressEvent(percent=None)
    return ProgressEvent(percent=min(100.0, max(0.0, seconds / duration * 100)))


class FFmpegEncoder(Encoder):
    """Runs ffmpeg as a subprocess and streams its progress."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        audio_bitrate: str = "192k",
    ):
        self._ffmpeg_path = ffmpeg_path
        self._ffprobe_path = ffprobe_path
        self._audio_bitrate = audio_bitrate

    def build_command(self, input_path: str, output_path: str) -> List[str]:
        return [
            self._ffmpeg_path,
            "-hide_banner",
            "-y",
            "-i", input_path,
            "-vn",
            "-codec:a", "libmp3lame",
            "-b:a", self._audio_bitrate,
            "-f", "mp3",
            "-progress", "pipe:1",
            "-nostats",
            output_path,
        ]

    async def probe_duration(self, input_path: str) -> Optional[float]:
        """Duration in seconds via ffprobe, or None if it cannot be determined."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self._ffprobe_path,
                "-v", "quiet",
                "-print_format", "json",
                "-show_format",
                input_path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
            stdout, _ = await proc.communicate()
        except OSError:
            return None
        if proc.returncode != 0:
            return None
        try:
            metadata = json.loads(stdout)
            duration = float(metadata["format"]["duration"])
        except (ValueError, KeyError, TypeError):
            return None
        return duration if duration > 0 else None

    async def transcode(self, input_path: str, output_path: str) -> AsyncIterator[EncoderEvent]:
        duration = await self.probe_duration(input_path)

        # ffmpeg writes beside the target; output_path only appears on success
        part_path = output_path + ".part"

        # OSError here (binary missing) propagates to the orchestrator
        proc = await asyncio.create_subprocess_exec(
            *self.build_command(input_path, part_path),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stderr_tail: deque = deque(maxlen=_STDERR_TAIL)
        stderr_task = asyncio.create_task(self._drain(proc.stderr, stderr_tail))

        try:
            async for raw in proc.stdout:
                event = parse_progress_line(raw.decode("utf-8", "replace"), duration)
                if event is not None:
                    yield event
            await stderr_task
            returncode = await proc.wait()
            if returncode == 0 and os.path.isfile(part_path):
                os.replace(part_path, output_path)
                outcome: EncoderEvent = SuccessEvent()
            elif returncode == 0:
                outcome = FailureEvent(reason="ffmpeg produced no output")
            else:
                detail = " | ".join(stderr_tail) or "no output"
                outcome = FailureEvent(reason=f"ffmpeg exited with code {returncode}: {detail}")
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            if not stderr_task.done():
                stderr_task.cancel()
            with contextlib.suppress(FileNotFoundError):
                os.remove(part_path)

        yield outcome

    @staticmethod
    async def _drain(stream: asyncio.StreamReader, tail: deque) -> None:
        async for raw in stream:
            line = raw.decode("utf-8", "replace").strip()
            if line:
                tail.append(line)
