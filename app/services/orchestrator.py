from __future__ import annotations

import asyncio
import logging
import random
import time
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from app.core.config import Settings
from app.core.errors import InferenceBusy, InferenceError, InferenceTimeout, ScoringUnavailable
from app.schemas import Prediction
from app.services.classifier import classify
from app.services.confidence import (
    ConfidenceEstimator,
    MarginConfidenceEstimator,
    RandomConfidenceEstimator,
    clamp_confidence,
)
from app.services.explain import (
    ExplanationSynthesizer,
    FeatureWeightedSynthesizer,
    RandomExplanationSynthesizer,
)
from app.services.features import FeatureScorer, ImageFeatureScorer, ImagePayload, RandomFeatureScorer

log = logging.getLogger(__name__)

DEFAULT_SLOT = "default"


class RequestState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class InferenceOrchestrator:
    """
    Runs one image through scorer -> classifier -> estimator -> synthesizer.

    ``infer`` suspends only while waiting out the settle delay. Every request
    belongs to an image slot; a slot can have at most one pending request.
    """

    def __init__(
        self,
        scorer: FeatureScorer,
        estimator: ConfidenceEstimator,
        synthesizer: ExplanationSynthesizer,
        settle_delay_s: float = 2.0,
        scoring_timeout_s: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.scorer = scorer
        self.estimator = estimator
        self.synthesizer = synthesizer
        self.settle_delay_s = settle_delay_s
        self.scoring_timeout_s = scoring_timeout_s
        self.clock = clock
        self.sleep = sleep

        self._states: Dict[str, RequestState] = {}
        self._errors: Dict[str, InferenceError] = {}

    def state(self, slot: str = DEFAULT_SLOT) -> RequestState:
        return self._states.get(slot, RequestState.IDLE)

    def last_error(self, slot: str = DEFAULT_SLOT) -> Optional[InferenceError]:
        return self._errors.get(slot)

    def tracked_slots(self) -> List[str]:
        return list(self._states)

    def forget(self, slot: str) -> None:
        """Drop the bookkeeping of a finished slot; a pending slot is kept."""
        if self.state(slot) != RequestState.PENDING:
            self._states.pop(slot, None)
            self._errors.pop(slot, None)

    def _reject(self, slot: str, err: InferenceError) -> InferenceError:
        self._states[slot] = RequestState.REJECTED
        self._errors[slot] = err
        log.warning("inference rejected slot=%s kind=%s detail=%s", slot, type(err).__name__, err.detail)
        return err

    def _run_steps(self, image: ImagePayload, slot: str) -> Prediction:
        started = self.clock()
        try:
            features = self.scorer.score(image)
        except InferenceError as e:
            raise self._reject(slot, e)
        except Exception as e:
            raise self._reject(slot, ScoringUnavailable(str(e))) from e

        if self.scoring_timeout_s is not None and self.clock() - started > self.scoring_timeout_s:
            raise self._reject(slot, InferenceTimeout(f"Scoring exceeded {self.scoring_timeout_s:.2f}s"))

        # one FeatureScores instance feeds every downstream step
        stage = classify(features)
        confidence = clamp_confidence(self.estimator.estimate_confidence(features, stage))
        explanation = self.synthesizer.explain(features)

        return Prediction(
            stage=stage,
            confidence=confidence,
            features=explanation.features_percent,
            heatmap=explanation.heatmap,
        )

    async def infer(self, image: ImagePayload, slot: str = DEFAULT_SLOT) -> Prediction:
        if self.state(slot) == RequestState.PENDING:
            raise InferenceBusy()

        self._states[slot] = RequestState.PENDING
        self._errors.pop(slot, None)
        submitted = self.clock()

        try:
            prediction = self._run_steps(image, slot)
        except InferenceError as e:
            if self.state(slot) == RequestState.PENDING:
                self._reject(slot, e)
            raise
        except Exception as e:
            raise self._reject(slot, ScoringUnavailable(str(e))) from e

        remaining = self.settle_delay_s - (self.clock() - submitted)
        try:
            await self.sleep(max(0.0, remaining))
        except asyncio.CancelledError:
            self._states[slot] = RequestState.IDLE
            raise

        self._states[slot] = RequestState.RESOLVED
        log.info(
            "inference resolved slot=%s stage=%s confidence=%.1f",
            slot, prediction.stage.value, prediction.confidence,
        )
        return prediction


def build_orchestrator(settings: Settings) -> InferenceOrchestrator:
    rng = random.Random(settings.RANDOM_SEED)

    if settings.SCORER == "image":
        scorer = ImageFeatureScorer()
    else:
        scorer = RandomFeatureScorer(rng)

    if settings.CONFIDENCE == "margin":
        estimator = MarginConfidenceEstimator()
    else:
        estimator = RandomConfidenceEstimator(rng)

    if settings.EXPLAINER == "weighted":
        synthesizer = FeatureWeightedSynthesizer()
    else:
        synthesizer = RandomExplanationSynthesizer(rng)

    return InferenceOrchestrator(
        scorer=scorer,
        estimator=estimator,
        synthesizer=synthesizer,
        settle_delay_s=settings.SETTLE_DELAY_S,
        scoring_timeout_s=settings.SCORING_TIMEOUT_S,
    )
