import random
from typing import List, Optional, Protocol

from app.schemas import (
    HEATMAP_REGIONS,
    Explanation,
    FeaturePercent,
    FeatureScores,
    RegionImportance,
)
from app.services.classifier import WEIGHTS


class ExplanationSynthesizer(Protocol):
    def explain(self, features: FeatureScores) -> Explanation:
        ...


def region_label(i: int) -> str:
    return f"Region {i + 1}"


def features_to_percent(features: FeatureScores) -> FeaturePercent:
    return FeaturePercent(
        color=features.color * 100,
        texture=features.texture * 100,
        shape=features.shape * 100,
        size=features.size * 100,
    )


def _heatmap(values: List[float]) -> List[RegionImportance]:
    return [
        RegionImportance(region=region_label(i), importance=max(0.0, min(100.0, v)))
        for i, v in enumerate(values)
    ]


class RandomExplanationSynthesizer:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def explain(self, features: FeatureScores) -> Explanation:
        return Explanation(
            features_percent=features_to_percent(features),
            heatmap=_heatmap([self.rng.random() * 100 for _ in range(HEATMAP_REGIONS)]),
        )


class FeatureWeightedSynthesizer:
    """
    Deterministic attribution: regions run from the fruit's centre (Region 1)
    to its silhouette (Region 10). Colour and texture dominate the centre,
    shape and size dominate the edge.
    """

    def explain(self, features: FeatureScores) -> Explanation:
        surface = WEIGHTS["color"] * features.color + WEIGHTS["texture"] * features.texture
        outline = WEIGHTS["shape"] * features.shape + WEIGHTS["size"] * features.size
        surface_max = WEIGHTS["color"] + WEIGHTS["texture"]
        outline_max = WEIGHTS["shape"] + WEIGHTS["size"]

        values = []
        for i in range(HEATMAP_REGIONS):
            t = i / (HEATMAP_REGIONS - 1)
            share = (1 - t) * surface / surface_max + t * outline / outline_max
            values.append(share * 100)

        return Explanation(features_percent=features_to_percent(features), heatmap=_heatmap(values))
