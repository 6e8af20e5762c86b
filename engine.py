"""Speech-to-text engine: model lifecycle, recording and transcription.

One engine instance is shared by every caller. A single lock serializes all
operations, so a transcription never overlaps a model load or a recording
state change. The ONNX sessions are created once by :meth:`SttEngine.load_models`
and kept until :meth:`SttEngine.unload_models`; model files may be
memory-mapped while loaded, so a loaded engine never reloads over them.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

import numpy as np

from config import (
    DECODER_JOINT_FILE,
    DEFAULT_INTRA_THREADS,
    DEFAULT_LOCK_TIMEOUT_S,
    ENCODER_FILE,
    MODEL_FILES,
    PREPROCESSOR_FILE,
    VOCAB_FILE,
)
from decoder import greedy_tdt_decode
from errors import (
    InferenceError,
    InvalidVocabEntryError,
    LockContentionError,
    ModelFilesMissingError,
    NotReadyError,
    SttError,
)
from interfaces import ComponentSession, SessionFactory
from models import (
    Downloading,
    Error,
    ModelStatus,
    NotDownloaded,
    Ready,
    SessionOptions,
    SttStatus,
)
from pipeline import TensorPipeline
from recording import RecordingBuffer
from sessions import create_onnx_session
from vocab import Vocabulary

logger = logging.getLogger(__name__)


def missing_model_files(model_dir: Path, files: Sequence[str] = MODEL_FILES) -> list[str]:
    return [name for name in files if not (Path(model_dir) / name).exists()]


def are_models_downloaded(model_dir: Path, files: Sequence[str] = MODEL_FILES) -> bool:
    return not missing_model_files(model_dir, files)


class SttEngine:
    def __init__(
        self,
        model_dir: Path,
        session_factory: Optional[SessionFactory] = None,
        options: Optional[SessionOptions] = None,
        lock_timeout_s: Optional[float] = DEFAULT_LOCK_TIMEOUT_S,
        autoload: bool = True,
    ) -> None:
        self._model_dir = Path(model_dir)
        self._session_factory = session_factory or create_onnx_session
        self._options = options or SessionOptions(intra_threads=DEFAULT_INTRA_THREADS)
        self._lock_timeout_s = lock_timeout_s
        self._lock = threading.Lock()

        self._recording = RecordingBuffer()
        self._vocab: Optional[Vocabulary] = None
        self._pipeline: Optional[TensorPipeline] = None
        self._status: ModelStatus = NotDownloaded()

        if autoload and are_models_downloaded(self._model_dir):
            try:
                self.load_models()
            except SttError as exc:
                logger.warning("Initial model load failed: %s", exc.message)

    @property
    def model_dir(self) -> Path:
        return self._model_dir

    @property
    def vocabulary(self) -> Optional[Vocabulary]:
        return self._vocab

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> SttStatus:
        with self._locked():
            return SttStatus(
                model_status=self._status,
                is_recording=self._recording.is_armed,
            )

    def is_model_loaded(self) -> bool:
        with self._locked():
            return self._is_loaded()

    def set_download_progress(self, progress: float) -> None:
        with self._locked():
            if self._is_loaded():
                logger.warning("Ignoring download progress, models already loaded")
                return
            if math.isnan(progress):
                progress = 0.0
            self._status = Downloading(progress=min(max(progress, 0.0), 1.0))

    def mark_error(self, message: str) -> None:
        with self._locked():
            if self._is_loaded():
                logger.warning("Ignoring error status while models are loaded: %s", message)
                return
            self._status = Error(message=message)

    # ------------------------------------------------------------------
    # Model lifecycle
    # ------------------------------------------------------------------

    def load_models(self) -> None:
        with self._locked():
            self._load_models()

    def unload_models(self) -> None:
        with self._locked():
            if self._recording.is_armed:
                discarded = self._recording.stop()
                logger.info("Discarded %d recorded samples on unload", discarded.size)
            self._pipeline = None
            self._vocab = None
            self._status = NotDownloaded()
            logger.info("Models unloaded")

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def start_recording(self) -> None:
        with self._locked():
            if not isinstance(self._status, Ready):
                raise NotReadyError()
            self._recording.start()
            logger.info("Recording started")

    def push_audio(self, samples: np.ndarray) -> None:
        with self._locked():
            self._recording.push(samples)

    def stop_recording(self) -> np.ndarray:
        with self._locked():
            was_armed = self._recording.is_armed
            audio = self._recording.stop()
            if was_armed:
                logger.info("Recording stopped: %d samples", audio.size)
            return audio

    # ------------------------------------------------------------------
    # Transcription
    # ------------------------------------------------------------------

    def transcribe(self, samples: np.ndarray) -> str:
        with self._locked():
            if not isinstance(self._status, Ready) or self._pipeline is None or self._vocab is None:
                raise NotReadyError()
            audio = np.asarray(samples, dtype=np.float32).reshape(-1)
            if audio.size == 0:
                return ""

            t0 = time.time()
            features, lengths = self._pipeline.extract_features(audio)
            encoder_output = self._pipeline.encode(features, lengths)
            tokens = greedy_tdt_decode(
                encoder_output,
                self._pipeline.joint_step,
                blank_id=self._vocab.blank_id,
                vocab_size=self._vocab.size,
            )
            text = self._vocab.decode(tokens)
            elapsed = time.time() - t0
            logger.info(
                "Transcribed %d samples (%d frames, %d tokens) in %.2fs: %s",
                audio.size,
                encoder_output.valid_length,
                len(tokens),
                elapsed,
                text[:80],
            )
            return text

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        timeout = -1 if self._lock_timeout_s is None else self._lock_timeout_s
        if not self._lock.acquire(timeout=timeout):
            raise LockContentionError(
                f"Could not acquire the engine lock within {self._lock_timeout_s:.1f}s"
            )
        try:
            yield
        finally:
            self._lock.release()

    def _is_loaded(self) -> bool:
        return isinstance(self._status, Ready) and self._pipeline is not None

    def _load_models(self) -> None:
        if self._is_loaded():
            logger.info("Models already loaded, skipping reload")
            return

        missing = missing_model_files(self._model_dir)
        if missing:
            raise ModelFilesMissingError(f"Models not downloaded, missing: {', '.join(missing)}")

        logger.info("Loading models from %s", self._model_dir)
        t0 = time.time()
        try:
            vocab = self._load_vocab()
            preprocessor = self._create_session(PREPROCESSOR_FILE, "preprocessor")
            encoder = self._create_session(ENCODER_FILE, "encoder")
            decoder_joint = self._create_session(DECODER_JOINT_FILE, "decoder")
        except SttError as exc:
            self._pipeline = None
            self._status = Error(message=exc.message)
            logger.error("Model load failed: %s", exc.message)
            raise

        self._vocab = vocab
        self._pipeline = TensorPipeline(preprocessor, encoder, decoder_joint)
        self._status = Ready()
        logger.info("Models loaded in %.1fs (vocab size %d)", time.time() - t0, vocab.size)

    def _load_vocab(self) -> Vocabulary:
        try:
            return Vocabulary.load(self._model_dir / VOCAB_FILE)
        except OSError as exc:
            raise ModelFilesMissingError(f"Failed to read vocab: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise InvalidVocabEntryError(f"Vocab is not valid UTF-8: {exc}") from exc

    def _create_session(self, filename: str, label: str) -> ComponentSession:
        try:
            return self._session_factory(self._model_dir / filename, self._options)
        except SttError:
            raise
        except Exception as exc:
            raise InferenceError(f"Failed to load {label} model: {exc}") from exc
