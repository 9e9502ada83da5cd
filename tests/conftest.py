import numpy as np                              # Numpy arrays mimic ONNX Runtime outputs
import pytest                                   # Pytest fixtures shared by the test modules

from src.models.model_config import ModelConfig, NormalizationParameters
from src.models.session import RiskModelSession


class StubSession:
    """Stands in for onnxruntime.InferenceSession."""

    def __init__(self, output):
        self.output = output                     # Value returned as the first model output
        self.calls = []                          # Records (output_names, feed) per run

    def run(self, output_names, feed):
        self.calls.append((output_names, feed))  # Keep inputs for assertions
        return [self.output]


@pytest.fixture
def normalization():
    return NormalizationParameters(              # Constants shipped with the model
        mean=[54.3, 150.0, 0.6, 1.2],
        scale=[9.2, 22.5, 0.49, 0.8],
    )


@pytest.fixture
def model_config(normalization):
    return ModelConfig(
        version="test-1",
        normalization=normalization,
        chest_pain_types=["0 - Typical Angina", "3 - Asymptomatic"],
    )


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "model.onnx"               # Temporary stand-in for the ONNX artifact
    path.write_bytes(b"fake-onnx-bytes")         # Contents are only read, never parsed
    return path


def make_session(model_file, output, **kwargs):
    stub = StubSession(output)
    session = RiskModelSession(
        model_file,
        session_factory=lambda model_bytes: stub,  # Inject stub instead of ONNX Runtime
        **kwargs,
    )
    return session, stub


@pytest.fixture
def score_session(model_file):
    def _build(score):
        return make_session(model_file, np.array([[score]], dtype=np.float32))
    return _build


@pytest.fixture
def build_session(model_file):
    def _build(output, **kwargs):
        return make_session(model_file, output, **kwargs)
    return _build
