# tests/conftest.py
# Shared fixtures: synthetic fruit images and a fake clock for the settle delay.

from __future__ import annotations
import io
import random

import pytest
from PIL import Image, ImageDraw

from app.services.confidence import RandomConfidenceEstimator
from app.services.explain import RandomExplanationSynthesizer
from app.services.features import RandomFeatureScorer
from app.services.orchestrator import InferenceOrchestrator


class FakeClock:
    """Monotonic clock that only moves when the orchestrator sleeps (or a test advances it)."""
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float):
        self.now += dt

    async def sleep(self, dt: float):
        self.sleeps.append(dt)
        self.now += dt


def make_png(color=(240, 170, 30), size=(96, 96), background=(255, 255, 255)) -> bytes:
    img = Image.new("RGB", size, background)
    draw = ImageDraw.Draw(img)
    w, h = size
    draw.ellipse([w * 0.15, h * 0.1, w * 0.85, h * 0.9], fill=color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def orchestrator(clock) -> InferenceOrchestrator:
    rng = random.Random(1234)
    return InferenceOrchestrator(
        scorer=RandomFeatureScorer(rng),
        estimator=RandomConfidenceEstimator(rng),
        synthesizer=RandomExplanationSynthesizer(rng),
        settle_delay_s=2.0,
        clock=clock,
        sleep=clock.sleep,
    )
