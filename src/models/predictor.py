import logging
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Union

from src.models.interpreter import RiskAssessment, interpret
from src.models.model_config import ModelConfig, load_model_config
from src.models.normalizer import RawInput, normalize
from src.models.session import RiskModelSession, SessionState, onnx_session_factory


logger = logging.getLogger(__name__)


class HeartRiskPredictor:
    """Normalize, score and interpret one request against a loaded model."""

    def __init__(self, config: ModelConfig, session: RiskModelSession):
        self.config = config
        self.session = session

    @classmethod
    def from_paths(
        cls,
        model_path: Union[str, Path],
        config_path: Union[str, Path],
        session_factory: Callable[[bytes], Any] = onnx_session_factory,
    ) -> "HeartRiskPredictor":
        config = load_model_config(config_path)
        session = RiskModelSession(
            model_path,
            input_name=config.input_name,
            output_name=config.output_name,
            session_factory=session_factory,
        )
        return cls(config, session)

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def is_ready(self) -> bool:
        return self.session.is_ready

    def start(self) -> Future:
        return self.session.start_loading()

    def assess(self, raw: RawInput) -> RiskAssessment:
        features = normalize(raw, self.config.normalization)
        logger.debug("Normalized features: %s", features.tolist())
        score = self.session.predict(features)
        return interpret(score, self.config.threshold)

    def close(self) -> None:
        self.session.close()
