"""Microphone recorder adapter."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import numpy as np

from config import SAMPLE_RATE
from errors import SttError
from interfaces import SamplesCallback

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDeviceRecorder:
    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        channels: int = 1,
        chunk_ms: int = 100,
        device: Optional[int] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.device = device
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self.dropped_chunks = 0
        self._on_samples: Optional[SamplesCallback] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, on_samples: SamplesCallback) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise RuntimeError("sounddevice is not installed")
            self._on_samples = on_samples
            self.dropped_chunks = 0
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="float32",
                blocksize=blocksize,
                device=self.device,
                callback=self._on_audio,
            )
            self._stream.start()
            self._running = True
            logger.info("Microphone opened (sr=%d, block=%d)", self.sample_rate, blocksize)

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            if self._stream is not None:
                self._stream.stop()
                self._stream.close()
                self._stream = None
            if self.dropped_chunks:
                logger.warning("Dropped %d audio chunks during capture", self.dropped_chunks)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.warning("Audio callback status: %s", status)
        if not self._running or self._on_samples is None:
            return
        data = np.asarray(indata, dtype=np.float32)
        samples = data[:, 0] if data.ndim > 1 else data.reshape(-1)
        try:
            self._on_samples(samples.copy())
        except SttError as exc:
            self.dropped_chunks += 1
            logger.debug("Audio chunk dropped: %s", exc.message)
        except Exception as exc:
            self.dropped_chunks += 1
            logger.warning("Audio chunk dropped: %s", exc)
