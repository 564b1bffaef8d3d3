class InferenceError(Exception):
    """Base for every failure scoped to a single ``infer`` call."""

    message = "Could not analyze this image"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.message)
        self.detail = detail or self.message


class InvalidImage(InferenceError):
    pass


class ScoringUnavailable(InferenceError):
    message = "Scoring backend unavailable"


class InferenceTimeout(InferenceError):
    message = "Inference timed out"


class InferenceBusy(InferenceError):
    message = "An analysis is already running for this image slot"
