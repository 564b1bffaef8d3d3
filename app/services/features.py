from __future__ import annotations

import random
from io import BytesIO
from typing import Optional, Protocol, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from app.core.errors import InvalidImage
from app.schemas import FeatureScores

ImagePayload = Union[bytes, bytearray, memoryview, np.ndarray, Image.Image]

# Working resolution for the heuristic extractor
SCORE_SIZE = 128


class FeatureScorer(Protocol):
    def score(self, image: ImagePayload) -> FeatureScores:
        ...


# -----------------------------
# Payload helpers
# -----------------------------
def ensure_payload(image: ImagePayload) -> None:
    """Reject empty or unparseable payloads before any scoring happens."""
    if image is None:
        raise InvalidImage("Empty image")

    if isinstance(image, Image.Image):
        if image.width == 0 or image.height == 0:
            raise InvalidImage("Empty image")
        return

    if isinstance(image, np.ndarray):
        if image.size == 0:
            raise InvalidImage("Empty image")
        if image.ndim not in (2, 3):
            raise InvalidImage(f"Unsupported pixel buffer shape {image.shape}")
        return

    data = bytes(image)
    if not data:
        raise InvalidImage("Empty image")
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise InvalidImage(f"Unparseable image: {e}") from e


def decode_rgb(image: ImagePayload) -> Image.Image:
    ensure_payload(image)

    if isinstance(image, Image.Image):
        return image.convert("RGB")

    if isinstance(image, np.ndarray):
        arr = image
        if arr.dtype != np.uint8:
            # float buffers are taken as 0..1
            scale = 255.0 if arr.max() <= 1.0 else 1.0
            arr = np.clip(arr * scale, 0, 255).astype(np.uint8)
        if arr.ndim == 3 and arr.shape[2] == 4:
            arr = arr[:, :, :3]
        try:
            return Image.fromarray(arr).convert("RGB")
        except (TypeError, ValueError) as e:
            raise InvalidImage(f"Unsupported pixel buffer: {e}") from e

    try:
        return Image.open(BytesIO(bytes(image))).convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidImage(f"Unparseable image: {e}") from e


# -----------------------------
# Strategies
# -----------------------------
class RandomFeatureScorer:
    """Stand-in for a trained model: four independent uniform draws."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def score(self, image: ImagePayload) -> FeatureScores:
        ensure_payload(image)
        return FeatureScores(
            color=self.rng.random(),
            texture=self.rng.random(),
            shape=self.rng.random(),
            size=self.rng.random(),
        )


def _clip01(x: float) -> float:
    return float(max(0.0, min(1.0, x)))


class ImageFeatureScorer:
    """
    Hand-built feature extraction on the decoded image.

    color:   hue shift from green (0) towards orange/red (1) over the fruit mask
    texture: share of dark spots plus mean gradient energy on the fruit surface
    shape:   how much of the mask's bounding box the fruit fills (shoulder fullness)
    size:    fruit mask area as a fraction of the frame
    """

    # PIL hue is 0..255 for 0..360 degrees
    GREEN_HUE = 85.0
    WRAP_HUE = 170.0

    def __init__(self, sat_min: float = 0.20, val_min: float = 0.15, dark_val: float = 0.35):
        self.sat_min = sat_min
        self.val_min = val_min
        self.dark_val = dark_val

    def _fruit_mask(self, hsv: np.ndarray) -> np.ndarray:
        s = hsv[:, :, 1] / 255.0
        v = hsv[:, :, 2] / 255.0
        mask = (s >= self.sat_min) & (v >= self.val_min)
        if not mask.any():
            # nothing separable from the background, score the whole frame
            mask = np.ones(mask.shape, dtype=bool)
        return mask

    def score(self, image: ImagePayload) -> FeatureScores:
        img = decode_rgb(image).resize((SCORE_SIZE, SCORE_SIZE))
        hsv = np.asarray(img.convert("HSV"), dtype=np.float32)
        mask = self._fruit_mask(hsv)

        h = hsv[:, :, 0][mask]
        h = np.where(h > self.WRAP_HUE, 0.0, h)
        color = float(np.mean(np.clip((self.GREEN_HUE - h) / self.GREEN_HUE, 0.0, 1.0)))

        v = hsv[:, :, 2] / 255.0
        dark_ratio = float(np.mean(v[mask] < self.dark_val))
        gy, gx = np.gradient(v)
        grad = float(np.mean(np.hypot(gx, gy)[mask]))
        texture = 0.5 * _clip01(dark_ratio * 4.0) + 0.5 * _clip01(grad * 10.0)

        ys, xs = np.nonzero(mask)
        box_area = float((ys.max() - ys.min() + 1) * (xs.max() - xs.min() + 1))
        fill = float(mask.sum()) / box_area
        shape = (fill - 0.5) / 0.5

        size = float(mask.sum()) / float(mask.size)

        return FeatureScores(
            color=_clip01(color),
            texture=_clip01(texture),
            shape=_clip01(shape),
            size=_clip01(size),
        )
