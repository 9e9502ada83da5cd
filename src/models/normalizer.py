import math
from typing import List

import numpy as np
from pydantic import BaseModel, ConfigDict

from src.models.errors import FormatError
from src.models.model_config import NormalizationParameters


SEX_CODES = {"male": 1.0, "female": 0.0}
CHEST_PAIN_SEPARATOR = " - "


class RawInput(BaseModel):
    """Values as the user entered them. Range checks happen upstream."""

    model_config = ConfigDict(frozen=True)

    age: float
    thalach: float
    sex: str
    chest_pain: str


def encode_sex(sex: str) -> float:
    try:
        return SEX_CODES[sex.strip().lower()]
    except KeyError:
        raise FormatError(f"Unknown sex value: {sex!r}", field="sex") from None


def parse_chest_pain_code(label: str) -> float:
    """Extract the numeric code from a label such as ``"3 - Asymptomatic"``."""
    token = label.split(CHEST_PAIN_SEPARATOR)[0].strip()
    try:
        code = float(token)
    except ValueError:
        raise FormatError(
            f"Chest pain label has no numeric code: {label!r}", field="chest_pain"
        ) from None

    if not math.isfinite(code):
        raise FormatError(
            f"Chest pain label has no numeric code: {label!r}", field="chest_pain"
        )
    return code


def raw_features(raw: RawInput) -> List[float]:
    return [
        float(raw.age),
        float(raw.thalach),
        encode_sex(raw.sex),
        parse_chest_pain_code(raw.chest_pain),
    ]


def normalize(raw: RawInput, params: NormalizationParameters) -> np.ndarray:
    """Standard-score the four features in model input order."""
    values = np.asarray(raw_features(raw), dtype=np.float32)
    mean = np.asarray(params.mean, dtype=np.float32)
    scale = np.asarray(params.scale, dtype=np.float32)
    return (values - mean) / scale
