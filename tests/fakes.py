from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from audioextract.encoder.base import Encoder, EncoderEvent, FailureEvent, SuccessEvent

FAKE_MP3 = b"ID3\x04\x00fake-mp3-payload"


class ScriptedEncoder(Encoder):
    """Plays back a fixed list of events instead of running ffmpeg."""

    def __init__(
        self,
        events: Sequence[EncoderEvent] = (SuccessEvent(),),
        raise_exc: Optional[BaseException] = None,
        delay: float = 0.0,
        gate: Optional[threading.Event] = None,
        on_resume: Optional[Callable[[], None]] = None,
        partial_output: bool = False,
    ):
        self.events = list(events)
        self.raise_exc = raise_exc
        self.delay = delay
        self.gate = gate
        self.on_resume = on_resume
        self.partial_output = partial_output
        self.calls: List[tuple] = []

    async def transcode(self, input_path: str, output_path: str):
        self.calls.append((input_path, output_path))
        if self.raise_exc is not None:
            raise self.raise_exc
        for event in self.events:
            if self.gate is not None and isinstance(event, (SuccessEvent, FailureEvent)):
                while not self.gate.is_set():
                    await asyncio.sleep(0.005)
            await asyncio.sleep(self.delay)
            if isinstance(event, SuccessEvent):
                Path(output_path).write_bytes(FAKE_MP3)
            elif isinstance(event, FailureEvent) and self.partial_output:
                Path(output_path).write_bytes(b"partial")
            yield event
            if self.on_resume is not None:
                self.on_resume()
