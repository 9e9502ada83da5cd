import math
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from src.models.errors import ModelConfigError


# Order the model was trained on. Reordering requires retraining.
FEATURE_ORDER = ["age", "thalach", "sex", "cp"]


class NormalizationParameters(BaseModel):
    mean: List[float]
    scale: List[float]

    @field_validator("mean", "scale")
    @classmethod
    def check_length(cls, values: List[float]) -> List[float]:
        if len(values) != len(FEATURE_ORDER):
            raise ValueError(
                f"expected {len(FEATURE_ORDER)} values, got {len(values)}"
            )
        if not all(math.isfinite(v) for v in values):
            raise ValueError("values must be finite")
        return values

    @field_validator("scale")
    @classmethod
    def check_scale_nonzero(cls, values: List[float]) -> List[float]:
        if any(v == 0 for v in values):
            raise ValueError("scale values must be non-zero")
        return values


class ModelConfig(BaseModel):
    """Constants shipped alongside a model artifact.

    Everything here comes out of the training run: the normalization
    statistics, the decision threshold and the chest-pain coding. A new
    model version ships a new file; the code does not change.
    """

    version: str = "unversioned"
    features: List[str] = Field(default_factory=lambda: list(FEATURE_ORDER))
    normalization: NormalizationParameters
    threshold: float = Field(0.5, ge=0.0, le=1.0)
    input_name: str = "float_input"
    output_name: Optional[str] = None
    chest_pain_types: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_feature_order(self) -> "ModelConfig":
        if self.features != FEATURE_ORDER:
            raise ValueError(
                f"features must be {FEATURE_ORDER}, got {self.features}"
            )
        return self


def load_model_config(path: Union[str, Path]) -> ModelConfig:
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ModelConfigError(f"Cannot read model config {path}: {exc}") from exc

    try:
        return ModelConfig.model_validate_json(raw)
    except ValidationError as exc:
        raise ModelConfigError(f"Invalid model config {path}: {exc}") from exc
