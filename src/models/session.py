import enum
import logging
import math
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, Union

import numpy as np

from src.models.errors import (
    ModelLoadError,
    PredictionError,
    SessionStateError,
    UnsupportedOutputTypeError,
)


logger = logging.getLogger(__name__)

FEATURE_COUNT = 4


class SessionState(str, enum.Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


def onnx_session_factory(model_bytes: bytes):
    import onnxruntime as ort

    return ort.InferenceSession(
        model_bytes,
        providers=["CPUExecutionProvider"],
    )


def extract_score(output: Any) -> float:
    """Reduce a model output to its first element.

    Accepts rank-1 or rank-2 numeric arrays (float or integer). ZipMap
    outputs, strings, non-finite scores and anything else are rejected.
    """
    try:
        array = np.asarray(output)
    except (TypeError, ValueError) as exc:
        raise UnsupportedOutputTypeError(
            f"Unexpected output type: {type(output).__name__}"
        ) from exc

    if array.dtype.kind not in "fiu" or array.ndim not in (1, 2) or array.size == 0:
        raise UnsupportedOutputTypeError(
            f"Unexpected output type: {type(output).__name__} "
            f"dtype={array.dtype} shape={array.shape}"
        )
    score = float(array.reshape(-1)[0])
    if not math.isfinite(score):
        raise UnsupportedOutputTypeError(f"Model returned a non-finite score: {score}")
    return score


class RiskModelSession:
    """Owns the single inference session for a model artifact.

    The session is created once by ``load`` (normally through
    ``start_loading`` on a background thread), used read-only by
    ``predict`` and released by ``close``.
    """

    def __init__(
        self,
        model_path: Union[str, Path],
        input_name: str = "float_input",
        output_name: Optional[str] = None,
        session_factory: Callable[[bytes], Any] = onnx_session_factory,
    ):
        self.model_path = Path(model_path)
        self.input_name = input_name
        self.output_name = output_name
        self._session_factory = session_factory
        self._session = None
        self._state = SessionState.UNLOADED
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    def _read_model_bytes(self) -> bytes:
        try:
            expected = os.path.getsize(self.model_path)
            with open(self.model_path, "rb") as file:
                model_bytes = file.read()
        except OSError as exc:
            raise ModelLoadError(
                f"Cannot read model file {self.model_path}: {exc}"
            ) from exc

        if not model_bytes:
            raise ModelLoadError(f"Model file {self.model_path} is empty")
        if len(model_bytes) != expected:
            raise ModelLoadError(
                f"Failed to read complete model file "
                f"({len(model_bytes)} of {expected} bytes)"
            )
        return model_bytes

    def load(self) -> None:
        with self._lock:
            if self._state is not SessionState.UNLOADED:
                raise SessionStateError(
                    f"Cannot load model in state {self._state.value}"
                )
            self._state = SessionState.LOADING

        logger.info("Loading model from %s", self.model_path)
        try:
            session = self._session_factory(self._read_model_bytes())
        except Exception as exc:
            with self._lock:
                if self._state is SessionState.LOADING:
                    self._state = SessionState.FAILED
            logger.error("Model loading failed: %s", exc)
            if isinstance(exc, ModelLoadError):
                raise
            raise ModelLoadError(f"Failed to load model: {exc}") from exc

        with self._lock:
            if self._state is SessionState.CLOSED:
                logger.info("Session closed while loading, discarding model")
                return
            self._session = session
            self._state = SessionState.READY
        logger.info("Model loaded successfully")

    def _log_load_result(self, future: Future) -> None:
        exc = future.exception()
        if exc is not None and not isinstance(exc, ModelLoadError):
            logger.error("Background model load failed: %s", exc)

    def start_loading(self) -> Future:
        """Run ``load`` on a background worker and return its future."""
        with self._lock:
            if self._state is SessionState.CLOSED:
                raise SessionStateError("Cannot load a closed session")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="model-loader"
                )
            executor = self._executor

        future = executor.submit(self.load)
        future.add_done_callback(self._log_load_result)
        return future

    def predict(self, vector: Sequence[float]) -> float:
        session = self._session
        if self._state is not SessionState.READY or session is None:
            raise SessionStateError("model not loaded")

        try:
            features = np.asarray(vector, dtype=np.float32)
        except (TypeError, ValueError) as exc:
            raise PredictionError(f"Invalid feature vector: {exc}") from exc
        if features.shape != (FEATURE_COUNT,):
            raise PredictionError(
                f"Expected {FEATURE_COUNT} features, got shape {features.shape}"
            )
        tensor = features.reshape(1, FEATURE_COUNT)

        output_names = [self.output_name] if self.output_name else None
        try:
            outputs = session.run(output_names, {self.input_name: tensor})
        except Exception as exc:
            raise PredictionError(f"Inference failed: {exc}") from exc

        if not outputs:
            raise UnsupportedOutputTypeError("Model returned no outputs")
        return extract_score(outputs[0])

    def close(self) -> None:
        with self._lock:
            if self._state is SessionState.CLOSED:
                return
            self._state = SessionState.CLOSED
            self._session = None
            executor, self._executor = self._executor, None

        if executor is not None:
            executor.shutdown(wait=False)
        logger.info("Model session released")

    def __enter__(self) -> "RiskModelSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
