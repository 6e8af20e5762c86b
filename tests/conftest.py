from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping

import numpy as np
import pytest

from config import DECODER_JOINT_FILE, ENCODER_FILE, MODEL_FILES, PREPROCESSOR_FILE, VOCAB_FILE
from models import SessionOptions

# "hello" and "world" are word-start pieces; blank is the last id as in Parakeet.
VOCAB_LINES = ["▁hello 0", "▁world 1", "<blk> 2"]
VOCAB_SIZE = 3
BLANK_ID = 2
NUM_DURATIONS = 5
ENCODED_DIM = 4


def make_logits(token: int, step: int, vocab_size: int = VOCAB_SIZE) -> np.ndarray:
    logits = np.zeros(vocab_size + NUM_DURATIONS, dtype=np.float32)
    logits[token] = 1.0
    logits[vocab_size + step] = 1.0
    return logits


class FakeSession:
    def __init__(self, handler: Callable[[Mapping[str, np.ndarray]], dict]) -> None:
        self.handler = handler
        self.calls: list[dict[str, np.ndarray]] = []

    def run(self, inputs: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        self.calls.append(dict(inputs))
        return self.handler(inputs)


class FakeSessionFactory:
    """Builds fake components for the three model files.

    The encoder always yields ``frames`` frames. The decoder-joint walks
    through ``script`` (token, step) pairs and answers blank with step 1
    once the script is exhausted.
    """

    def __init__(self, frames: int = 3, script: list[tuple[int, int]] | None = None) -> None:
        self.frames = frames
        self.script = list(script if script is not None else [(0, 1), (1, 1), (BLANK_ID, 1)])
        self.created: list[str] = []
        self.options: list[SessionOptions] = []
        self.fail_on: str | None = None
        self.sessions: dict[str, FakeSession] = {}

    def __call__(self, path: Path, options: SessionOptions) -> FakeSession:
        name = Path(path).name
        if name == self.fail_on:
            raise RuntimeError(f"cannot open {name}")
        self.created.append(name)
        self.options.append(options)
        handlers = {
            PREPROCESSOR_FILE: self._preprocess,
            ENCODER_FILE: self._encode,
            DECODER_JOINT_FILE: self._joint,
        }
        session = FakeSession(handlers[name])
        self.sessions[name] = session
        return session

    def total_calls(self) -> int:
        return sum(len(s.calls) for s in self.sessions.values())

    def _preprocess(self, inputs: Mapping[str, np.ndarray]) -> dict:
        n = int(inputs["waveforms_lens"][0])
        frames = max(1, n // 160)
        return {
            "features": np.zeros((1, frames, 128), dtype=np.float32),
            "features_lens": np.array([frames], dtype=np.int64),
        }

    def _encode(self, inputs: Mapping[str, np.ndarray]) -> dict:
        return {
            "outputs": np.zeros((1, ENCODED_DIM, self.frames), dtype=np.float32),
            "encoded_lengths": np.array([self.frames], dtype=np.int64),
        }

    def _joint(self, inputs: Mapping[str, np.ndarray]) -> dict:
        token, step = self.script.pop(0) if self.script else (BLANK_ID, 1)
        return {
            "outputs": make_logits(token, step).reshape(1, 1, 1, -1),
            "output_states_1": inputs["input_states_1"] + 1.0,
            "output_states_2": inputs["input_states_2"] + 1.0,
        }


def write_model_files(model_dir: Path, vocab_lines: list[str] = VOCAB_LINES) -> Path:
    model_dir.mkdir(parents=True, exist_ok=True)
    for name in MODEL_FILES:
        (model_dir / name).write_bytes(b"")
    (model_dir / VOCAB_FILE).write_text("\n".join(vocab_lines) + "\n", encoding="utf-8")
    return model_dir


@pytest.fixture
def model_dir(tmp_path: Path) -> Path:
    return write_model_files(tmp_path / "model")


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()
