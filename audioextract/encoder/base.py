"""Encoder interface and the events it emits."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union


@dataclass(frozen=True)
class ProgressEvent:
    """Encoder progress. percent is None when the input has no known duration."""
    percent: Optional[float] = None


@dataclass(frozen=True)
class SuccessEvent:
    """Output fully written to the target path."""
    pass


@dataclass(frozen=True)
class FailureEvent:
    reason: str


EncoderEvent = Union[ProgressEvent, SuccessEvent, FailureEvent]


class Encoder(ABC):
    """Abstract base class for audio transcoders.

    An implementation yields zero or more ProgressEvents followed by exactly
    one SuccessEvent or FailureEvent. It may also raise (e.g. the encoder
    binary is missing); callers treat that the same as a FailureEvent.
    """

    @abstractmethod
    def transcode(self, input_path: str, output_path: str) -> AsyncIterator[EncoderEvent]:
        """Transcode input_path's audio track into output_path."""
        ...
