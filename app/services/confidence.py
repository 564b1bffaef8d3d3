import random
from typing import Optional, Protocol

from app.schemas import CONFIDENCE_MAX, CONFIDENCE_MIN, FeatureScores, Stage
from app.services.classifier import threshold_margin, weighted_total

HEADROOM = CONFIDENCE_MAX - CONFIDENCE_MIN

# half-width of an inner stage interval; a total this far from every
# threshold earns the full headroom
FULL_MARGIN = 0.1


class ConfidenceEstimator(Protocol):
    def estimate_confidence(self, features: FeatureScores, stage: Stage) -> float:
        ...


def clamp_confidence(x: float) -> float:
    return max(CONFIDENCE_MIN, min(CONFIDENCE_MAX, float(x)))


class RandomConfidenceEstimator:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def estimate_confidence(self, features: FeatureScores, stage: Stage) -> float:
        return clamp_confidence(CONFIDENCE_MIN + self.rng.random() * HEADROOM)


class MarginConfidenceEstimator:
    """Confidence grows with the distance between the weighted total and the nearest threshold."""

    def __init__(self, full_margin: float = FULL_MARGIN):
        self.full_margin = full_margin

    def estimate_confidence(self, features: FeatureScores, stage: Stage) -> float:
        margin = threshold_margin(weighted_total(features))
        ratio = min(margin / self.full_margin, 1.0)
        return clamp_confidence(CONFIDENCE_MIN + ratio * HEADROOM)
