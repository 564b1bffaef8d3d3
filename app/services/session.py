from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from app.core.errors import InferenceBusy, InferenceError
from app.schemas import Prediction
from app.services.features import ImagePayload
from app.services.orchestrator import InferenceOrchestrator

log = logging.getLogger(__name__)


@dataclass
class GraderSession:
    """
    UI-side state of one grader screen: the image slot, the analyzing flag,
    the current prediction and the explanation toggle.

    ``generation`` increases on every submit and reset; a result carrying an
    older generation has been superseded and is dropped.
    """

    slot: str = "default"
    image: Optional[ImagePayload] = None
    analyzing: bool = False
    prediction: Optional[Prediction] = None
    error: Optional[InferenceError] = None
    show_explanation: bool = False
    generation: int = 0

    def submit(self, image: ImagePayload) -> int:
        if self.analyzing:
            raise InferenceBusy()
        self.generation += 1
        self.image = image
        self.analyzing = True
        self.prediction = None
        self.error = None
        self.show_explanation = False
        return self.generation

    def resolve(self, generation: int, prediction: Prediction) -> bool:
        if generation != self.generation:
            log.debug("dropping superseded prediction gen=%d current=%d", generation, self.generation)
            return False
        self.prediction = prediction
        self.analyzing = False
        return True

    def fail(self, generation: int, error: InferenceError) -> bool:
        if generation != self.generation:
            return False
        self.error = error
        self.analyzing = False
        return True

    def reset(self) -> None:
        self.generation += 1
        self.image = None
        self.analyzing = False
        self.prediction = None
        self.error = None
        self.show_explanation = False

    def toggle_explanation(self) -> bool:
        if self.prediction is None:
            self.show_explanation = False
        else:
            self.show_explanation = not self.show_explanation
        return self.show_explanation

    async def analyze(self, orchestrator: InferenceOrchestrator, image: ImagePayload) -> Optional[Prediction]:
        """Submit ``image`` and apply the outcome unless the user moved on meanwhile."""
        gen = self.submit(image)
        # each generation has its own request slot, so a reset request still
        # settling never blocks the next submission
        request_slot = f"{self.slot}:{gen}"
        try:
            prediction = await orchestrator.infer(image, slot=request_slot)
        except InferenceError as e:
            self.fail(gen, e)
            return None
        finally:
            orchestrator.forget(request_slot)
        if not self.resolve(gen, prediction):
            return None
        return prediction
