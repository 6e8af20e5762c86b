"""Recording buffer with an Idle/Armed state machine."""

from __future__ import annotations

from enum import Enum

import numpy as np

from errors import NotRecordingError


class RecordingState(str, Enum):
    IDLE = "IDLE"
    ARMED = "ARMED"


class RecordingBuffer:
    """Accumulates float32 samples while armed.

    Not thread-safe on its own; the engine serializes access.
    """

    def __init__(self) -> None:
        self._chunks: list[np.ndarray] = []
        self._num_samples = 0
        self._state = RecordingState.IDLE

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_armed(self) -> bool:
        return self._state == RecordingState.ARMED

    @property
    def num_samples(self) -> int:
        return self._num_samples

    def start(self) -> None:
        self._chunks = []
        self._num_samples = 0
        self._state = RecordingState.ARMED

    def push(self, samples: np.ndarray) -> None:
        if self._state != RecordingState.ARMED:
            raise NotRecordingError()
        chunk = np.asarray(samples, dtype=np.float32).reshape(-1)
        if chunk.size == 0:
            return
        self._chunks.append(chunk.copy())
        self._num_samples += chunk.size

    def stop(self) -> np.ndarray:
        """Disarm and hand over everything recorded so far."""
        self._state = RecordingState.IDLE
        chunks, self._chunks = self._chunks, []
        self._num_samples = 0
        if not chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(chunks)
