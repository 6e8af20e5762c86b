"""Runs the feature extractor, encoder and decoder-joint components.

Each component takes and returns named tensors. This adapter builds the
inputs each exported graph expects and checks the outputs before handing
them on as plain numpy arrays.
"""

from __future__ import annotations

from typing import Mapping

import numpy as np

from errors import InferenceError
from interfaces import ComponentSession
from models import EncoderOutput, RecurrentState


class TensorPipeline:
    def __init__(
        self,
        preprocessor: ComponentSession,
        encoder: ComponentSession,
        decoder_joint: ComponentSession,
    ) -> None:
        self._preprocessor = preprocessor
        self._encoder = encoder
        self._decoder_joint = decoder_joint

    def extract_features(self, samples: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Log-mel features (1, frames, 128) and their valid lengths (1,)."""
        waveform = np.asarray(samples, dtype=np.float32).reshape(1, -1)
        outputs = _run(
            self._preprocessor,
            "preprocessor",
            {
                "waveforms": waveform,
                "waveforms_lens": np.array([waveform.shape[1]], dtype=np.int64),
            },
        )
        features = _require(outputs, "features", "preprocessor", dtype=np.float32)
        lengths = _require(outputs, "features_lens", "preprocessor", dtype=np.int64)
        if features.ndim != 3 or features.shape[0] != 1:
            raise InferenceError(f"preprocessor returned features of shape {features.shape}")
        return features, _as_lengths(lengths, "preprocessor")

    def encode(self, features: np.ndarray, lengths: np.ndarray) -> EncoderOutput:
        outputs = _run(
            self._encoder,
            "encoder",
            {"audio_signal": features, "length": lengths},
        )
        encoded = _require(outputs, "outputs", "encoder", dtype=np.float32)
        encoded_lengths = _require(outputs, "encoded_lengths", "encoder", dtype=np.int64)
        if encoded.ndim != 3 or encoded.shape[0] != 1:
            raise InferenceError(f"encoder returned outputs of shape {encoded.shape}")
        return EncoderOutput(
            encoded=encoded,
            length=int(_as_lengths(encoded_lengths, "encoder")[0]),
        )

    def joint_step(
        self,
        frame: np.ndarray,
        prev_token: int,
        state: RecurrentState,
    ) -> tuple[np.ndarray, RecurrentState]:
        outputs = _run(
            self._decoder_joint,
            "decoder-joint",
            {
                "encoder_outputs": frame,
                "targets": np.array([[prev_token]], dtype=np.int32),
                "target_length": np.array([1], dtype=np.int32),
                "input_states_1": state.hidden,
                "input_states_2": state.cell,
            },
        )
        logits = _require(outputs, "outputs", "decoder-joint", dtype=np.float32)
        hidden = _require(outputs, "output_states_1", "decoder-joint", dtype=np.float32)
        cell = _require(outputs, "output_states_2", "decoder-joint", dtype=np.float32)
        if hidden.shape != state.hidden.shape or cell.shape != state.cell.shape:
            raise InferenceError(
                f"decoder-joint returned states of shape {hidden.shape} and {cell.shape}, "
                f"expected {state.hidden.shape}"
            )
        return logits.reshape(-1), RecurrentState(hidden=hidden, cell=cell)


def _run(
    session: ComponentSession,
    name: str,
    inputs: Mapping[str, np.ndarray],
) -> Mapping[str, np.ndarray]:
    try:
        outputs = session.run(inputs)
    except InferenceError:
        raise
    except Exception as exc:
        raise InferenceError(f"Failed to run {name}: {exc}") from exc
    if not isinstance(outputs, Mapping):
        raise InferenceError(f"{name} returned {type(outputs).__name__}, expected named outputs")
    return outputs


def _require(
    outputs: Mapping[str, np.ndarray],
    key: str,
    name: str,
    dtype: type,
) -> np.ndarray:
    if key not in outputs:
        raise InferenceError(f"{name} output '{key}' is missing")
    try:
        return np.asarray(outputs[key], dtype=dtype)
    except (TypeError, ValueError) as exc:
        raise InferenceError(f"Failed to extract {name} output '{key}': {exc}") from exc


def _as_lengths(lengths: np.ndarray, name: str) -> np.ndarray:
    lengths = lengths.reshape(-1)
    if lengths.size == 0:
        raise InferenceError(f"{name} returned an empty length tensor")
    return lengths
