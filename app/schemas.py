from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

HEATMAP_REGIONS = 10
CONFIDENCE_MIN = 85.0
CONFIDENCE_MAX = 97.0


class Stage(str, Enum):
    UNRIPE = "unripe"
    MATURE_GREEN = "mature_green"
    TURNING = "turning"
    RIPE = "ripe"
    OVERRIPE = "overripe"

    @property
    def ordinal(self) -> int:
        # declaration order is the ripening order
        return list(Stage).index(self)


class FeatureScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    color: float = Field(ge=0, le=1)
    texture: float = Field(ge=0, le=1)
    shape: float = Field(ge=0, le=1)
    size: float = Field(ge=0, le=1)


class FeaturePercent(BaseModel):
    model_config = ConfigDict(frozen=True)

    color: float = Field(ge=0, le=100)
    texture: float = Field(ge=0, le=100)
    shape: float = Field(ge=0, le=100)
    size: float = Field(ge=0, le=100)


class RegionImportance(BaseModel):
    model_config = ConfigDict(frozen=True)

    region: str
    importance: float = Field(ge=0, le=100)


class Explanation(BaseModel):
    model_config = ConfigDict(frozen=True)

    features_percent: FeaturePercent
    heatmap: List[RegionImportance] = Field(min_length=HEATMAP_REGIONS, max_length=HEATMAP_REGIONS)


class Prediction(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: Stage
    confidence: float = Field(ge=CONFIDENCE_MIN, le=CONFIDENCE_MAX)
    features: FeaturePercent
    heatmap: List[RegionImportance] = Field(min_length=HEATMAP_REGIONS, max_length=HEATMAP_REGIONS)


class StageInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: Stage
    name: str
    color: str
    description: str
    characteristics: List[str]
    recommendations: str
    days_to_ripe: str


class DecisionFactor(BaseModel):
    feature: str
    title: str
    detail: str
    percent: float = Field(ge=0, le=100)
    weight: float


class PredictResponse(BaseModel):
    prediction: Prediction
    stage_info: StageInfo
    weighted_total: float = Field(ge=0, le=1)
    reason: str
    decision_factors: List[DecisionFactor]


class StageListResponse(BaseModel):
    stages: List[StageInfo]
    weights: Dict[str, float]
