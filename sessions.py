"""ONNX Runtime backed neural component sessions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import numpy as np

from errors import InferenceError
from models import SessionOptions

try:
    import onnxruntime as ort
except Exception:  # pragma: no cover
    ort = None  # type: ignore

logger = logging.getLogger(__name__)

_OPTIMIZATION_LEVELS = {
    "disable": "ORT_DISABLE_ALL",
    "basic": "ORT_ENABLE_BASIC",
    "extended": "ORT_ENABLE_EXTENDED",
    "all": "ORT_ENABLE_ALL",
}


class OnnxComponentSession:
    """Adapts ``onnxruntime.InferenceSession`` to name-keyed inputs and outputs."""

    def __init__(self, session: Any) -> None:
        self._session = session
        self._output_names = [o.name for o in session.get_outputs()]

    @property
    def input_names(self) -> list[str]:
        return [i.name for i in self._session.get_inputs()]

    @property
    def output_names(self) -> list[str]:
        return list(self._output_names)

    def run(self, inputs: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        values = self._session.run(self._output_names, dict(inputs))
        return dict(zip(self._output_names, values))


def build_session_options(options: SessionOptions) -> Any:
    if ort is None:
        raise InferenceError("onnxruntime is not installed")
    level_name = _OPTIMIZATION_LEVELS.get(options.graph_optimization)
    if level_name is None:
        raise ValueError(f"Unknown graph optimization level: {options.graph_optimization}")
    sess_options = ort.SessionOptions()
    sess_options.graph_optimization_level = getattr(ort.GraphOptimizationLevel, level_name)
    sess_options.intra_op_num_threads = options.intra_threads
    return sess_options


def create_onnx_session(path: Path, options: SessionOptions) -> OnnxComponentSession:
    """Load one component graph from ``path`` with the shared options."""
    sess_options = build_session_options(options)
    logger.info(
        "Loading %s (optimization=%s, intra_threads=%d)",
        Path(path).name,
        options.graph_optimization,
        options.intra_threads,
    )
    session = ort.InferenceSession(
        str(path),
        sess_options=sess_options,
        providers=["CPUExecutionProvider"],
    )
    return OnnxComponentSession(session)
