"""Application entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys
import wave
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from config import SAMPLE_RATE, JsonConfigStore
from downloader import ModelDownloader
from engine import SttEngine
from errors import SttError
from logger import setup_logging
from models import SessionOptions, SessionState
from recorder import SoundDeviceRecorder
from session_controller import SessionController

logger = logging.getLogger(__name__)


def read_wav(path: Path) -> np.ndarray:
    """Load a 16-bit PCM mono WAV file as float32 samples in [-1, 1]."""
    with wave.open(str(path), "rb") as wf:
        if wf.getsampwidth() != 2:
            raise ValueError(f"{path}: expected 16-bit PCM, got {wf.getsampwidth() * 8}-bit")
        if wf.getnchannels() != 1:
            raise ValueError(f"{path}: expected mono audio, got {wf.getnchannels()} channels")
        if wf.getframerate() != SAMPLE_RATE:
            raise ValueError(f"{path}: expected {SAMPLE_RATE} Hz, got {wf.getframerate()} Hz")
        pcm = wf.readframes(wf.getnframes())
    audio = np.frombuffer(pcm, dtype=np.int16).astype(np.float32)
    return audio / 32768.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Offline speech-to-text with Parakeet TDT running on ONNX Runtime.",
    )
    parser.add_argument("--model-dir", type=Path, help="Directory holding the model files")
    parser.add_argument("--download", action="store_true", help="Download the model files first")
    parser.add_argument("--wav", type=Path, help="Transcribe a 16 kHz mono 16-bit WAV file and exit")
    parser.add_argument("--threads", type=int, help="Intra-op threads per model component")
    parser.add_argument("--device", type=int, help="Input device index for microphone capture")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _download(engine: SttEngine) -> bool:
    def on_progress(progress: float) -> None:
        print(f"Downloading model: {progress * 100:.0f}%", file=sys.stderr)

    def on_error(code: str, message: str) -> None:
        print(f"{code}: {message}", file=sys.stderr)

    return ModelDownloader(engine, on_progress=on_progress, on_error=on_error).run()


def _dictate(engine: SttEngine, device: Optional[int]) -> int:
    controller = SessionController(
        engine=engine,
        recorder=SoundDeviceRecorder(device=device),
        on_result=print,
        on_error=lambda code, message: print(f"{code}: {message}", file=sys.stderr),
    )
    print("Press Enter to start recording, Enter again to stop. Ctrl-C to quit.", file=sys.stderr)
    try:
        while True:
            input()
            controller.start_session()
            if controller.state != SessionState.RECORDING:
                continue
            print("Recording...", file=sys.stderr)
            input()
            controller.stop_session()
    except (EOFError, KeyboardInterrupt):
        controller.cancel_session("app quit")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    store = JsonConfigStore()
    if args.model_dir:
        store.set_model_dir(args.model_dir.expanduser().resolve())
    if args.threads:
        store.set_intra_threads(args.threads)
    if args.device is not None:
        store.set_input_device(args.device)

    engine = SttEngine(
        store.get_model_dir(),
        options=SessionOptions(intra_threads=store.get_intra_threads()),
    )

    if args.download and not _download(engine):
        return 1

    status = engine.status()
    logger.info("Model status: %s", status.model_status.to_dict())

    if args.wav:
        try:
            samples = read_wav(args.wav)
            engine.start_recording()
            engine.push_audio(samples)
            print(engine.transcribe(engine.stop_recording()))
        except (SttError, ValueError, OSError) as exc:
            print(f"Transcription failed: {exc}", file=sys.stderr)
            return 1
        return 0

    return _dictate(engine, store.get_input_device())


if __name__ == "__main__":
    raise SystemExit(main())
