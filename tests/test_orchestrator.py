# tests/test_orchestrator.py
# Purpose: request lifecycle, settle delay and failure handling of the orchestrator.

from __future__ import annotations
import asyncio
from unittest.mock import Mock

import pytest

from app.core.config import Settings
from app.core.errors import InferenceBusy, InferenceTimeout, InvalidImage, ScoringUnavailable
from app.schemas import FeatureScores, Stage
from app.services.confidence import MarginConfidenceEstimator, RandomConfidenceEstimator
from app.services.explain import FeatureWeightedSynthesizer, RandomExplanationSynthesizer
from app.services.features import ImageFeatureScorer, RandomFeatureScorer
from app.services.orchestrator import InferenceOrchestrator, RequestState, build_orchestrator


def test_infer_resolves_after_settle_delay(orchestrator, clock, png_bytes):
    assert orchestrator.state() == RequestState.IDLE
    started = clock.now

    pred = asyncio.run(orchestrator.infer(png_bytes))

    assert pred.stage in set(Stage)
    assert 85.0 <= pred.confidence <= 97.0
    assert len(pred.heatmap) == 10
    assert clock.now - started >= 2.0
    assert clock.sleeps == [pytest.approx(2.0)]
    assert orchestrator.state() == RequestState.RESOLVED


def test_settle_delay_counts_scoring_time(clock, png_bytes):
    scorer = Mock()

    def slow_score(image):
        clock.advance(0.5)
        return FeatureScores(color=0.5, texture=0.5, shape=0.5, size=0.5)

    scorer.score.side_effect = slow_score
    orch = InferenceOrchestrator(
        scorer, MarginConfidenceEstimator(), FeatureWeightedSynthesizer(),
        settle_delay_s=2.0, clock=clock, sleep=clock.sleep,
    )
    asyncio.run(orch.infer(png_bytes))
    assert clock.sleeps == [pytest.approx(1.5)]


def test_empty_payload_rejects_without_prediction(orchestrator, clock):
    estimator = Mock()
    synthesizer = Mock()
    orchestrator.estimator = estimator
    orchestrator.synthesizer = synthesizer

    with pytest.raises(InvalidImage):
        asyncio.run(orchestrator.infer(b""))

    assert orchestrator.state() == RequestState.REJECTED
    assert isinstance(orchestrator.last_error(), InvalidImage)
    estimator.estimate_confidence.assert_not_called()
    synthesizer.explain.assert_not_called()
    assert clock.sleeps == []


def test_orchestrator_reusable_after_failure(orchestrator, png_bytes):
    with pytest.raises(InvalidImage):
        asyncio.run(orchestrator.infer(b""))
    pred = asyncio.run(orchestrator.infer(png_bytes))
    assert pred.stage in set(Stage)
    assert orchestrator.last_error() is None


def test_unexpected_scorer_error_becomes_scoring_unavailable(clock, png_bytes):
    scorer = Mock()
    scorer.score.side_effect = ConnectionError("model server down")
    orch = InferenceOrchestrator(
        scorer, MarginConfidenceEstimator(), FeatureWeightedSynthesizer(),
        clock=clock, sleep=clock.sleep,
    )
    with pytest.raises(ScoringUnavailable):
        asyncio.run(orch.infer(png_bytes))
    assert orch.state() == RequestState.REJECTED


def test_scoring_timeout(clock, png_bytes):
    scorer = Mock()

    def slow_score(image):
        clock.advance(5.0)
        return FeatureScores(color=0.1, texture=0.1, shape=0.1, size=0.1)

    scorer.score.side_effect = slow_score
    orch = InferenceOrchestrator(
        scorer, MarginConfidenceEstimator(), FeatureWeightedSynthesizer(),
        scoring_timeout_s=1.0, clock=clock, sleep=clock.sleep,
    )
    with pytest.raises(InferenceTimeout):
        asyncio.run(orch.infer(png_bytes))


def test_same_features_feed_every_step(clock, png_bytes):
    features = FeatureScores(color=0.9, texture=0.9, shape=0.9, size=0.9)
    scorer = Mock()
    scorer.score.return_value = features
    estimator = Mock()
    estimator.estimate_confidence.return_value = 90.0
    synthesizer = Mock(wraps=FeatureWeightedSynthesizer())

    orch = InferenceOrchestrator(scorer, estimator, synthesizer, clock=clock, sleep=clock.sleep)
    pred = asyncio.run(orch.infer(png_bytes))

    assert pred.stage == Stage.OVERRIPE
    estimator.estimate_confidence.assert_called_once_with(features, Stage.OVERRIPE)
    synthesizer.explain.assert_called_once_with(features)


def test_out_of_range_confidence_is_clamped(clock, png_bytes):
    estimator = Mock()
    estimator.estimate_confidence.return_value = 150.0
    orch = InferenceOrchestrator(
        RandomFeatureScorer(), estimator, FeatureWeightedSynthesizer(), clock=clock, sleep=clock.sleep,
    )
    assert asyncio.run(orch.infer(png_bytes)).confidence == 97.0


def test_second_request_on_pending_slot_is_busy(png_bytes):
    async def scenario():
        orch = InferenceOrchestrator(
            RandomFeatureScorer(), RandomConfidenceEstimator(), RandomExplanationSynthesizer(),
            settle_delay_s=0.05,
        )
        first = asyncio.ensure_future(orch.infer(png_bytes, slot="a"))
        await asyncio.sleep(0)
        assert orch.state("a") == RequestState.PENDING

        with pytest.raises(InferenceBusy):
            await orch.infer(png_bytes, slot="a")

        # other slots are independent
        other = await orch.infer(png_bytes, slot="b")
        pred = await first
        return orch, pred, other

    orch, pred, other = asyncio.run(scenario())
    assert pred.stage in set(Stage) and other.stage in set(Stage)
    assert orch.state("a") == RequestState.RESOLVED


def test_build_orchestrator_from_settings():
    s = Settings(SCORER="image", CONFIDENCE="margin", EXPLAINER="weighted", SETTLE_DELAY_S=0.5, RANDOM_SEED=1)
    orch = build_orchestrator(s)
    assert isinstance(orch.scorer, ImageFeatureScorer)
    assert isinstance(orch.estimator, MarginConfidenceEstimator)
    assert isinstance(orch.synthesizer, FeatureWeightedSynthesizer)
    assert orch.settle_delay_s == 0.5

    default = build_orchestrator(Settings())
    assert isinstance(default.scorer, RandomFeatureScorer)
    assert isinstance(default.estimator, RandomConfidenceEstimator)
    assert isinstance(default.synthesizer, RandomExplanationSynthesizer)


def test_forget_releases_finished_slot(orchestrator, png_bytes):
    asyncio.run(orchestrator.infer(png_bytes, slot="upload-1"))
    orchestrator.forget("upload-1")
    assert orchestrator.state("upload-1") == RequestState.IDLE
