from typing import Dict, List, Union

from app.schemas import Stage, StageInfo

_CATALOG: Dict[Stage, StageInfo] = {
    Stage.UNRIPE: StageInfo(
        stage=Stage.UNRIPE,
        name="Unripe (Stage 1)",
        color="green-600",
        description="Hard, green mango - not ready for harvest",
        characteristics=["Predominantly green", "Very firm texture", "High acidity", "Starch-rich"],
        recommendations="Keep on tree for 2-3 more weeks",
        days_to_ripe="15-25 days",
    ),
    Stage.MATURE_GREEN: StageInfo(
        stage=Stage.MATURE_GREEN,
        name="Mature Green (Stage 2)",
        color="green-400",
        description="Ready for harvest - will ripen off tree",
        characteristics=["Light green", "Firm but yields slightly", "Shoulder development", "Suitable for transport"],
        recommendations="Optimal for commercial harvest and long-distance transport",
        days_to_ripe="7-12 days at room temp",
    ),
    Stage.TURNING: StageInfo(
        stage=Stage.TURNING,
        name="Turning (Stage 3)",
        color="yellow-500",
        description="Beginning to ripen - color break stage",
        characteristics=["Yellow patches appearing", "Softer texture", "Sweet aroma developing", "Sugar formation"],
        recommendations="Good for local markets. Ripen at room temperature",
        days_to_ripe="3-5 days",
    ),
    Stage.RIPE: StageInfo(
        stage=Stage.RIPE,
        name="Ripe (Stage 4)",
        color="orange-500",
        description="Perfect for consumption",
        characteristics=["Yellow-orange color", "Soft but not mushy", "Strong sweet aroma", "Peak sweetness"],
        recommendations="Consume immediately or refrigerate for 2-3 days",
        days_to_ripe="Ready to eat",
    ),
    Stage.OVERRIPE: StageInfo(
        stage=Stage.OVERRIPE,
        name="Overripe (Stage 5)",
        color="red-600",
        description="Past optimal ripeness",
        characteristics=["Dark spots", "Very soft/mushy", "Fermented smell", "Quality degradation"],
        recommendations="Use immediately for smoothies, processing, or discard",
        days_to_ripe="Past prime",
    ),
}


def lookup(stage: Union[Stage, str]) -> StageInfo:
    """Catalog entry for a stage. Unknown stage strings raise ``KeyError``."""
    if not isinstance(stage, Stage):
        try:
            stage = Stage(stage)
        except ValueError:
            raise KeyError(stage)
    return _CATALOG[stage]


def all_stages() -> List[StageInfo]:
    return [_CATALOG[s] for s in Stage]
