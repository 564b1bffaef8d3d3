from bisect import bisect_right

from app.schemas import FeatureScores, Stage

# Relative importance of the visual cues. Changing how much a cue matters is
# done here and nowhere else; the weights must sum to 1.0.
WEIGHTS = {
    "color": 0.4,
    "texture": 0.3,
    "shape": 0.2,
    "size": 0.1,
}

# Lower bounds of stages 2..5. A total equal to a bound belongs to the later stage.
THRESHOLDS = (0.2, 0.4, 0.6, 0.8)

STAGES = tuple(Stage)


def weighted_total(features: FeatureScores) -> float:
    total = sum(getattr(features, name) * w for name, w in WEIGHTS.items())
    return max(0.0, min(1.0, total))


def stage_for_total(total: float) -> Stage:
    # bisect_right puts a value equal to a threshold in the interval above it;
    # 1.0 falls past the last bound so overripe is closed at the top
    return STAGES[bisect_right(THRESHOLDS, total)]


def classify(features: FeatureScores) -> Stage:
    return stage_for_total(weighted_total(features))


def stage_bounds(stage: Stage) -> tuple:
    bounds = (0.0,) + THRESHOLDS + (1.0,)
    i = stage.ordinal
    return bounds[i], bounds[i + 1]


def threshold_margin(total: float) -> float:
    """Distance from ``total`` to the nearest edge of its own stage interval.

    The outer edges 0.0 and 1.0 are not decision thresholds, so for the first
    and last stage only the inner threshold counts.
    """
    stage = stage_for_total(total)
    lo, hi = stage_bounds(stage)
    edges = []
    if stage.ordinal > 0:
        edges.append(total - lo)
    if stage.ordinal < len(STAGES) - 1:
        edges.append(hi - total)
    return max(0.0, min(edges))
