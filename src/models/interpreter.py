from pydantic import BaseModel


DEFAULT_THRESHOLD = 0.5

HIGH_RISK_LABEL = "High Risk"
LOW_RISK_LABEL = "Low Risk"

RECOMMENDATIONS = {
    "high": "Please consult a physician.",
    "low": "No consultation needed at this time.",
}

# (text, background)
COLORS = {
    "high": ("#C62828", "#FFEBEE"),
    "low": ("#2E7D32", "#E8F5E9"),
}


class RiskAssessment(BaseModel):
    score: float
    threshold: float
    label: str
    percentage: float
    percentage_text: str
    message: str
    recommendation: str
    color_category: str
    text_color: str
    background_color: str


def interpret(score: float, threshold: float = DEFAULT_THRESHOLD) -> RiskAssessment:
    """Map a model score to the high/low presentation.

    Only a score strictly above the threshold is high risk. The
    percentage is the confidence in whichever label was chosen.
    """
    if score > threshold:
        category, label, percentage = "high", HIGH_RISK_LABEL, score * 100
    else:
        category, label, percentage = "low", LOW_RISK_LABEL, (1 - score) * 100

    percentage_text = f"{percentage:.1f}%"
    text_color, background_color = COLORS[category]

    return RiskAssessment(
        score=score,
        threshold=threshold,
        label=label,
        percentage=percentage,
        percentage_text=percentage_text,
        message=f"{label} of Heart Disease ({percentage_text})",
        recommendation=RECOMMENDATIONS[category],
        color_category=category,
        text_color=text_color,
        background_color=background_color,
    )
