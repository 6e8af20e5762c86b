"""Protocol interfaces used by the engine and SessionController."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping, Protocol

import numpy as np

from models import RecurrentState, SessionOptions

SamplesCallback = Callable[[np.ndarray], None]


class ComponentSession(Protocol):
    """One neural component: named tensors in, named tensors out."""

    def run(self, inputs: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]: ...


class SessionFactory(Protocol):
    def __call__(self, path: Path, options: SessionOptions) -> ComponentSession: ...


class JointStep(Protocol):
    """Decoder-joint invocation used by the greedy decode loop."""

    def __call__(
        self,
        frame: np.ndarray,
        prev_token: int,
        state: RecurrentState,
    ) -> tuple[np.ndarray, RecurrentState]: ...


class Recorder(Protocol):
    def start(self, on_samples: SamplesCallback) -> None: ...

    def stop(self) -> None: ...


class Transcriber(Protocol):
    def start_recording(self) -> None: ...

    def push_audio(self, samples: np.ndarray) -> None: ...

    def stop_recording(self) -> np.ndarray: ...

    def transcribe(self, samples: np.ndarray) -> str: ...
