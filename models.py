"""Core data models for the speech engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

import numpy as np


class ModelStatusKind(str, Enum):
    NOT_DOWNLOADED = "NotDownloaded"
    DOWNLOADING = "Downloading"
    READY = "Ready"
    ERROR = "Error"


@dataclass(frozen=True)
class NotDownloaded:
    kind = ModelStatusKind.NOT_DOWNLOADED

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value}


@dataclass(frozen=True)
class Downloading:
    progress: float = 0.0
    kind = ModelStatusKind.DOWNLOADING

    def __post_init__(self) -> None:
        if not 0.0 <= self.progress <= 1.0:
            raise ValueError(f"progress must be within [0, 1], got {self.progress}")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "progress": self.progress}


@dataclass(frozen=True)
class Ready:
    kind = ModelStatusKind.READY

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value}


@dataclass(frozen=True)
class Error:
    message: str
    kind = ModelStatusKind.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "message": self.message}


ModelStatus = Union[NotDownloaded, Downloading, Ready, Error]


@dataclass(frozen=True)
class SttStatus:
    model_status: ModelStatus
    is_recording: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "modelStatus": self.model_status.to_dict(),
            "isRecording": self.is_recording,
        }


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    TRANSCRIBING = "TRANSCRIBING"
    ERROR = "ERROR"


@dataclass
class SessionOptions:
    """Optimization and threading settings shared by all three components."""

    intra_threads: int = 4
    graph_optimization: str = "all"


@dataclass(frozen=True)
class RecurrentState:
    """Decoder-joint LSTM memory, shape (layers, batch, hidden) for both tensors."""

    hidden: np.ndarray
    cell: np.ndarray

    @classmethod
    def zeros(cls, layers: int = 2, hidden_size: int = 640) -> "RecurrentState":
        shape = (layers, 1, hidden_size)
        return cls(
            hidden=np.zeros(shape, dtype=np.float32),
            cell=np.zeros(shape, dtype=np.float32),
        )


@dataclass(frozen=True)
class EncoderOutput:
    encoded: np.ndarray  # (batch=1, dim, frames)
    length: int

    @property
    def dim(self) -> int:
        return int(self.encoded.shape[1])

    @property
    def frames(self) -> int:
        return int(self.encoded.shape[2])

    @property
    def valid_length(self) -> int:
        return max(0, min(self.length, self.frames))

    def frame(self, t: int) -> np.ndarray:
        """Single encoder frame as a contiguous (1, dim, 1) array."""
        return np.ascontiguousarray(self.encoded[:, :, t : t + 1], dtype=np.float32)


@dataclass(frozen=True)
class DecodeStep:
    token: int
    step: int
    state: RecurrentState
