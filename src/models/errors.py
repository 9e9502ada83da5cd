class HeartRiskError(Exception):
    """Base class for every error raised by the risk pipeline."""


class FormatError(HeartRiskError, ValueError):
    """A raw field value could not be turned into a feature."""

    def __init__(self, message: str, field: str):
        super().__init__(message)
        self.field = field


class ModelConfigError(HeartRiskError):
    """The model sidecar config is missing or invalid."""


class ModelLoadError(HeartRiskError):
    """The model artifact could not be read or the runtime rejected it."""


class PredictionError(HeartRiskError):
    """A single prediction failed; the session stays usable."""


class SessionStateError(PredictionError):
    """The session is not in a state that allows the call."""


class UnsupportedOutputTypeError(PredictionError):
    """The model returned something that is not a numeric score."""
