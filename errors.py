"""Shared error codes, user-facing messages and typed failures."""

from __future__ import annotations

NOT_READY = "NOT_READY"
NOT_RECORDING = "NOT_RECORDING"
MODEL_FILES_MISSING = "MODEL_FILES_MISSING"
INVALID_VOCAB_ENTRY = "INVALID_VOCAB_ENTRY"
INFERENCE_ERROR = "INFERENCE_ERROR"
LOCK_CONTENTION = "LOCK_CONTENTION"
DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
AUDIO_DEVICE_ERROR = "AUDIO_DEVICE_ERROR"

ERROR_MESSAGES = {
    NOT_READY: "Model not ready. Please download the model first.",
    NOT_RECORDING: "Not recording.",
    MODEL_FILES_MISSING: "Model files are missing, please download them.",
    INVALID_VOCAB_ENTRY: "Vocabulary file contains an invalid entry.",
    INFERENCE_ERROR: "Speech model failed to process the audio.",
    LOCK_CONTENTION: "Speech engine is busy, please retry.",
    DOWNLOAD_FAILED: "Model download failed, please retry.",
    AUDIO_DEVICE_ERROR: "Microphone could not be opened.",
}


class SttError(Exception):
    """Base failure carrying one of the error codes above."""

    code = INFERENCE_ERROR

    def __init__(self, message: str = "") -> None:
        super().__init__(message or ERROR_MESSAGES[self.code])
        self.message = message or ERROR_MESSAGES[self.code]


class NotReadyError(SttError):
    code = NOT_READY


class NotRecordingError(SttError):
    code = NOT_RECORDING


class ModelFilesMissingError(SttError):
    code = MODEL_FILES_MISSING


class InvalidVocabEntryError(SttError):
    code = INVALID_VOCAB_ENTRY


class InferenceError(SttError):
    code = INFERENCE_ERROR


class LockContentionError(SttError):
    code = LOCK_CONTENTION
