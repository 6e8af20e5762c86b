"""Hugging Face model download with progress tracking."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Sequence

from huggingface_hub import hf_hub_download

from config import HF_REPO_ID, MODEL_FILES
from engine import SttEngine
from errors import DOWNLOAD_FAILED, SttError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
FinishedCallback = Callable[[], None]
ErrorCallback = Callable[[str, str], None]


class ModelDownloader:
    """Fetch every model file into the engine's model directory, then load.

    The engine lock is only taken for status updates and the final load,
    never while a file is being transferred.
    """

    def __init__(
        self,
        engine: SttEngine,
        repo_id: str = HF_REPO_ID,
        files: Sequence[str] = MODEL_FILES,
        on_progress: Optional[ProgressCallback] = None,
        on_finished: Optional[FinishedCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._engine = engine
        self._repo_id = repo_id
        self._files = tuple(files)
        self._on_progress = on_progress
        self._on_finished = on_finished
        self._on_error = on_error
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self.run, daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def run(self) -> bool:
        if self._engine.is_model_loaded():
            logger.info("Models already loaded, skipping download")
            return True

        model_dir = self._engine.model_dir
        total = len(self._files)
        try:
            model_dir.mkdir(parents=True, exist_ok=True)
            self._engine.set_download_progress(0.0)
            self._emit_progress(0.0)

            for index, filename in enumerate(self._files, start=1):
                logger.info("Downloading %s (%d/%d) from %s", filename, index, total, self._repo_id)
                hf_hub_download(
                    repo_id=self._repo_id,
                    filename=filename,
                    local_dir=str(model_dir),
                )
                progress = index / total if total else 1.0
                self._engine.set_download_progress(progress)
                self._emit_progress(progress)

            logger.info("Model download completed: %s", self._repo_id)
            self._engine.load_models()
        except SttError as exc:
            logger.error("Model setup failed: %s", exc.message)
            self._engine.mark_error(exc.message)
            self._emit_error(exc.code, exc.message)
            return False
        except Exception as exc:
            logger.exception("Model download failed: %s", self._repo_id)
            message = f"Failed to download model: {exc}"
            self._engine.mark_error(message)
            self._emit_error(DOWNLOAD_FAILED, message)
            return False

        if self._on_finished:
            self._on_finished()
        return True

    def _emit_progress(self, progress: float) -> None:
        if self._on_progress:
            self._on_progress(progress)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)
