"""Orientation correction: rotate an image and pick the most readable rotation.

The search is brute force. Each of the four right-angle rotations is
rendered and scored by the vision model, one after another, and the
best-scoring one wins. Ties go to the earlier (smaller) angle, so the
unrotated image is kept unless some rotation scores strictly higher.
"""

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Literal, Optional, Protocol

from PIL import Image

from ..errors import EncodeFailure, RenderFailure
from .codec import encode

logger = logging.getLogger(__name__)

ANGLES = (0, 90, 180, 270)
LOSSY_QUALITY = 95

# Clockwise rotation by angle, expressed as a lossless transpose
_TRANSPOSE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}

_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

_LOSSY_FORMATS = {"JPEG", "WEBP"}


class ReadabilityScorer(Protocol):
    async def score(self, image_base64: str, mime_type: str) -> int: ...


def rotate(data: bytes, mime_type: str, degrees: int) -> bytes:
    """Rotate image bytes clockwise by a right angle, keeping the format.

    Raises:
        ValueError: If ``degrees`` is not one of 0, 90, 180, 270
        RenderFailure: If the bytes cannot be decoded
        EncodeFailure: If the rotated image cannot be written back
    """
    if degrees not in ANGLES:
        raise ValueError(f"Unsupported rotation: {degrees}")
    if degrees == 0:
        return data

    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise RenderFailure(f"Could not decode image for rotation: {e}") from e

    rotated = img.transpose(_TRANSPOSE[degrees])

    fmt = _PIL_FORMATS.get(mime_type)
    if fmt is None:
        raise EncodeFailure(f"Cannot encode rotated image as {mime_type}")

    options = {}
    if fmt in _LOSSY_FORMATS:
        options["quality"] = LOSSY_QUALITY
    if fmt == "JPEG" and rotated.mode not in ("RGB", "L"):
        rotated = rotated.convert("RGB")

    out = BytesIO()
    try:
        rotated.save(out, format=fmt, **options)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeFailure(f"Could not encode rotated image: {e}") from e
    return out.getvalue()


@dataclass
class RotationCandidate:
    """One orientation under evaluation."""

    angle: int
    data: bytes
    score: Optional[int] = None
    state: Literal["pending", "scored"] = "pending"

    def mark_scored(self, score: int) -> None:
        self.score = score
        self.state = "scored"


@dataclass
class RotationSearch:
    """Sequential scoring of all four rotations of one image."""

    data: bytes
    mime_type: str
    candidates: list[RotationCandidate] = field(default_factory=list)

    async def run(self, scorer: ReadabilityScorer) -> RotationCandidate:
        best: Optional[RotationCandidate] = None
        best_score = -1

        for angle in ANGLES:
            candidate = RotationCandidate(angle, rotate(self.data, self.mime_type, angle))
            self.candidates.append(candidate)

            score = await scorer.score(encode(candidate.data), self.mime_type)
            candidate.mark_scored(score)
            logger.debug(f"[ROTATION] {angle} deg scored {score}/10")

            if score > best_score:
                best, best_score = candidate, score

        assert best is not None
        logger.info(f"[ROTATION] Best orientation: {best.angle} deg (score {best_score})")
        return best


async def select_best_rotation(
    data: bytes,
    mime_type: str,
    scorer: ReadabilityScorer,
) -> RotationCandidate:
    """Score all four rotations and return the most readable one."""
    return await RotationSearch(data, mime_type).run(scorer)
