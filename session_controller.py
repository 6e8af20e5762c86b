"""State-machine based dictation session orchestration."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from errors import AUDIO_DEVICE_ERROR, SttError
from interfaces import Recorder, Transcriber
from models import SessionState

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
ResultCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]


class SessionController:
    """Drives one record-then-transcribe cycle at a time.

    IDLE -> RECORDING -> TRANSCRIBING -> IDLE, passing through ERROR on
    any failure before settling back in IDLE.
    """

    def __init__(
        self,
        engine: Transcriber,
        recorder: Recorder,
        on_state_change: Optional[StateCallback] = None,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._engine = engine
        self._recorder = recorder
        self._on_state_change = on_state_change
        self._on_result = on_result
        self._on_error = on_error

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session_id = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> int:
        return self._session_id

    def start_session(self) -> None:
        with self._lock:
            if self._state != SessionState.IDLE:
                return
            try:
                self._engine.start_recording()
            except SttError as exc:
                self._emit_error(exc.code, exc.message)
                return
            self._session_id += 1
            self._transition(SessionState.RECORDING)
            try:
                self._recorder.start(self._engine.push_audio)
            except Exception as exc:
                self._fail(AUDIO_DEVICE_ERROR, f"start failed: {exc}")

    def stop_session(self) -> str:
        with self._lock:
            if self._state != SessionState.RECORDING:
                return ""
            self._transition(SessionState.TRANSCRIBING)
            self._safe_stop_recorder()
            try:
                samples = self._engine.stop_recording()
                text = self._engine.transcribe(samples)
            except SttError as exc:
                self._fail(exc.code, exc.message)
                return ""

            self._transition(SessionState.IDLE)
            if text.strip() and self._on_result:
                self._on_result(text)
            return text

    def cancel_session(self, reason: str) -> None:
        with self._lock:
            if self._state == SessionState.IDLE:
                return
            logger.info("Session %d cancelled: %s", self._session_id, reason)
            self._safe_stop_recorder()
            self._discard_recording()
            self._transition(SessionState.IDLE)

    def _fail(self, code: str, message: str) -> None:
        self._transition(SessionState.ERROR)
        self._emit_error(code, message)
        self._safe_stop_recorder()
        self._discard_recording()
        self._transition(SessionState.IDLE)

    def _emit_error(self, code: str, message: str) -> None:
        logger.error("Session error %s: %s", code, message)
        if self._on_error:
            self._on_error(code, message)

    def _safe_stop_recorder(self) -> None:
        try:
            self._recorder.stop()
        except Exception:
            logger.exception("Failed to stop recorder")

    def _discard_recording(self) -> None:
        try:
            self._engine.stop_recording()
        except SttError as exc:
            logger.warning("Failed to discard recording: %s", exc.message)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
