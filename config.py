"""Model constants and a simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

APP_NAME = "local-stt"

MODEL_NAME = "parakeet-tdt-0.6b-v3"
HF_REPO_ID = "istupakov/parakeet-tdt-0.6b-v3-onnx"

PREPROCESSOR_FILE = "nemo128.onnx"
ENCODER_FILE = "encoder-model.onnx"
DECODER_JOINT_FILE = "decoder_joint-model.onnx"
VOCAB_FILE = "vocab.txt"

MODEL_FILES = (
    PREPROCESSOR_FILE,
    ENCODER_FILE,
    "encoder-model.onnx.data",  # ~2.4GB external weights
    DECODER_JOINT_FILE,
    VOCAB_FILE,
    "config.json",
)

SAMPLE_RATE = 16000
NUM_LSTM_LAYERS = 2
LSTM_HIDDEN_SIZE = 640
MAX_TOKENS_PER_FRAME = 10

DEFAULT_INTRA_THREADS = 4
DEFAULT_LOCK_TIMEOUT_S = 30.0

CONFIG_DIR = Path.home() / ".config" / APP_NAME
DEFAULT_MODEL_DIR = Path.home() / ".local" / "share" / APP_NAME / "models" / MODEL_NAME


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or CONFIG_DIR / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def get_model_dir(self) -> Path:
        data = self._read_all()
        value = data.get("model_dir")
        return Path(value) if value else DEFAULT_MODEL_DIR

    def set_model_dir(self, model_dir: Path) -> None:
        data = self._read_all()
        data["model_dir"] = str(model_dir)
        self._write_all(data)

    def get_intra_threads(self) -> int:
        data = self._read_all()
        try:
            threads = int(data.get("intra_threads", DEFAULT_INTRA_THREADS))
        except (TypeError, ValueError):
            return DEFAULT_INTRA_THREADS
        return threads if threads > 0 else DEFAULT_INTRA_THREADS

    def set_intra_threads(self, threads: int) -> None:
        data = self._read_all()
        data["intra_threads"] = int(threads)
        self._write_all(data)

    def get_input_device(self) -> Optional[int]:
        value = self._read_all().get("input_device")
        return value if isinstance(value, int) else None

    def set_input_device(self, device: Optional[int]) -> None:
        data = self._read_all()
        data["input_device"] = device
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
