from typing import List

from app.schemas import DecisionFactor, Prediction, StageInfo
from app.services.classifier import WEIGHTS

FACTOR_TEXT = {
    "color": ("Color Analysis", "Evaluated RGB distribution and dominant hues to determine ripeness stage"),
    "texture": ("Texture Detection", "Analyzed surface smoothness and spot patterns indicating maturity"),
    "shape": ("Shape Recognition", "Assessed fruit fullness and shoulder development"),
    "size": ("Size Estimation", "Compared proportions against typical maturity standards"),
}


def weighted_total_from_percent(prediction: Prediction) -> float:
    total = sum(getattr(prediction.features, k) / 100.0 * w for k, w in WEIGHTS.items())
    return max(0.0, min(1.0, total))


def decision_factors(prediction: Prediction) -> List[DecisionFactor]:
    factors = []
    for feature, weight in WEIGHTS.items():
        title, detail = FACTOR_TEXT[feature]
        factors.append(DecisionFactor(
            feature=feature,
            title=title,
            detail=detail,
            percent=getattr(prediction.features, feature),
            weight=weight,
        ))
    return factors


def make_reason(prediction: Prediction, info: StageInfo) -> str:
    contrib = {k: getattr(prediction.features, k) / 100.0 * w for k, w in WEIGHTS.items()}
    driver = max(contrib, key=contrib.get)
    top = sorted(prediction.heatmap, key=lambda r: -r.importance)[:3]
    regions = ", ".join(f"{r.region} ({r.importance:.0f})" for r in top)

    return (
        f"Graded {info.name} with {prediction.confidence:.1f}% confidence. "
        f"Weighted score {weighted_total_from_percent(prediction):.2f} "
        f"(color {prediction.features.color:.0f}%, texture {prediction.features.texture:.0f}%, "
        f"shape {prediction.features.shape:.0f}%, size {prediction.features.size:.0f}%). "
        f"Main driver: {driver}. Most attended regions: {regions}."
    )
