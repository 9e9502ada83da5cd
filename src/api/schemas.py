from typing import List, Literal                 # Typing helpers for list and fixed-choice fields

from pydantic import BaseModel, Field            # BaseModel provides data validation and serialization

from src.models.normalizer import RawInput       # Pipeline input built from a validated request


class HeartRiskRequest(BaseModel):               # Request schema for heart risk prediction input
    age: float = Field(..., ge=20, le=100)       # Age in years
    thalach: float = Field(..., ge=60, le=220)   # Maximum heart rate achieved (beats/min)
    sex: Literal["male", "female"]               # Biological sex as selected in the form
    chest_pain: str = Field(..., min_length=1)   # Chest pain label, e.g. "3 - Asymptomatic"

    def to_raw_input(self) -> RawInput:
        return RawInput(**self.model_dump())


class PredictionResponse(BaseModel):             # Response schema returned after prediction
    label: str                                   # "High Risk" or "Low Risk"
    percentage: str                              # Confidence in the label, e.g. "70.0%"
    message: str                                 # Headline shown to the user
    recommendation: str                          # Advice text for the chosen label
    color_category: Literal["high", "low"]       # Traffic-light band
    text_color: str                              # Foreground color for the result
    background_color: str                        # Background color for the result
    score: float                                 # Raw model score
    model_version: str                           # Version of the model config in use


class ChestPainTypesResponse(BaseModel):         # Labels offered for the chest pain selector
    chest_pain_types: List[str]
