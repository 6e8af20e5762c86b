"""Tests for TensorPipeline input building and output validation."""

from __future__ import annotations

import numpy as np
import pytest

from errors import InferenceError
from models import RecurrentState
from pipeline import TensorPipeline


class StubSession:
    def __init__(self, outputs=None, exc: Exception | None = None) -> None:  # noqa: ANN001
        self.outputs = outputs
        self.exc = exc
        self.inputs: list[dict] = []

    def run(self, inputs):  # noqa: ANN001
        self.inputs.append(dict(inputs))
        if self.exc is not None:
            raise self.exc
        return self.outputs


def _pipeline(preprocessor=None, encoder=None, joint=None) -> TensorPipeline:  # noqa: ANN001
    return TensorPipeline(
        preprocessor or StubSession(),
        encoder or StubSession(),
        joint or StubSession(),
    )


# ---------------------------------------------------------------
# extract_features
# ---------------------------------------------------------------

def test_extract_features_builds_waveform_inputs() -> None:
    pre = StubSession(
        {
            "features": np.zeros((1, 5, 128), dtype=np.float32),
            "features_lens": np.array([5], dtype=np.int64),
        }
    )
    features, lengths = _pipeline(preprocessor=pre).extract_features(np.ones(800))

    sent = pre.inputs[0]
    assert sent["waveforms"].shape == (1, 800)
    assert sent["waveforms"].dtype == np.float32
    assert sent["waveforms_lens"].tolist() == [800]
    assert sent["waveforms_lens"].dtype == np.int64
    assert features.shape == (1, 5, 128)
    assert lengths.tolist() == [5]


def test_extract_features_wraps_component_failure() -> None:
    pre = StubSession(exc=RuntimeError("bad graph"))
    with pytest.raises(InferenceError, match="preprocessor"):
        _pipeline(preprocessor=pre).extract_features(np.ones(10))


def test_extract_features_rejects_malformed_shape() -> None:
    pre = StubSession(
        {
            "features": np.zeros((5, 128), dtype=np.float32),
            "features_lens": np.array([5], dtype=np.int64),
        }
    )
    with pytest.raises(InferenceError, match="shape"):
        _pipeline(preprocessor=pre).extract_features(np.ones(10))


def test_extract_features_rejects_missing_output() -> None:
    pre = StubSession({"features": np.zeros((1, 5, 128), dtype=np.float32)})
    with pytest.raises(InferenceError, match="features_lens"):
        _pipeline(preprocessor=pre).extract_features(np.ones(10))


def test_extract_features_rejects_empty_lengths() -> None:
    pre = StubSession(
        {
            "features": np.zeros((1, 5, 128), dtype=np.float32),
            "features_lens": np.array([], dtype=np.int64),
        }
    )
    with pytest.raises(InferenceError, match="empty length"):
        _pipeline(preprocessor=pre).extract_features(np.ones(10))


def test_non_mapping_outputs_are_rejected() -> None:
    pre = StubSession([np.zeros((1, 5, 128))])
    with pytest.raises(InferenceError, match="named outputs"):
        _pipeline(preprocessor=pre).extract_features(np.ones(10))


# ---------------------------------------------------------------
# encode
# ---------------------------------------------------------------

def test_encode_returns_encoder_output() -> None:
    enc = StubSession(
        {
            "outputs": np.zeros((1, 16, 7), dtype=np.float32),
            "encoded_lengths": np.array([6], dtype=np.int64),
        }
    )
    features = np.zeros((1, 50, 128), dtype=np.float32)
    lengths = np.array([50], dtype=np.int64)

    output = _pipeline(encoder=enc).encode(features, lengths)

    assert enc.inputs[0]["audio_signal"] is features
    assert enc.inputs[0]["length"] is lengths
    assert output.dim == 16
    assert output.frames == 7
    assert output.length == 6
    assert output.valid_length == 6


def test_encode_rejects_batched_output() -> None:
    enc = StubSession(
        {
            "outputs": np.zeros((2, 16, 7), dtype=np.float32),
            "encoded_lengths": np.array([7, 7], dtype=np.int64),
        }
    )
    with pytest.raises(InferenceError, match="encoder"):
        _pipeline(encoder=enc).encode(np.zeros((1, 5, 128)), np.array([5]))


# ---------------------------------------------------------------
# joint_step
# ---------------------------------------------------------------

def test_joint_step_builds_decoder_inputs() -> None:
    state = RecurrentState.zeros()
    joint = StubSession(
        {
            "outputs": np.arange(13, dtype=np.float32).reshape(1, 1, 1, 13),
            "output_states_1": np.ones((2, 1, 640), dtype=np.float32),
            "output_states_2": np.full((2, 1, 640), 2.0, dtype=np.float32),
        }
    )
    frame = np.zeros((1, 16, 1), dtype=np.float32)

    logits, new_state = _pipeline(joint=joint).joint_step(frame, 42, state)

    sent = joint.inputs[0]
    assert sent["encoder_outputs"] is frame
    assert sent["targets"].tolist() == [[42]]
    assert sent["targets"].dtype == np.int32
    assert sent["target_length"].tolist() == [1]
    assert sent["target_length"].dtype == np.int32
    assert sent["input_states_1"] is state.hidden
    assert sent["input_states_2"] is state.cell
    assert logits.shape == (13,)
    assert np.all(new_state.hidden == 1.0)
    assert np.all(new_state.cell == 2.0)


def test_joint_step_rejects_wrong_state_shape() -> None:
    joint = StubSession(
        {
            "outputs": np.zeros(13, dtype=np.float32),
            "output_states_1": np.zeros((1, 1, 640), dtype=np.float32),
            "output_states_2": np.zeros((2, 1, 640), dtype=np.float32),
        }
    )
    with pytest.raises(InferenceError, match="states"):
        _pipeline(joint=joint).joint_step(np.zeros((1, 16, 1)), 0, RecurrentState.zeros())
