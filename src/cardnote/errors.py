"""Error kinds raised by the processing pipeline.

Every error here is terminal for the image being processed. Nothing is
retried automatically.
"""

from typing import Optional


class CardNoteError(Exception):
    """Base class for pipeline failures."""


class MissingCredential(CardNoteError):
    """No API key is configured."""


class TransportFailure(CardNoteError):
    """The inference request could not complete or returned a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ScoringRequestFailure(TransportFailure):
    """Transport failure during a readability scoring call."""


class NoJsonFound(CardNoteError):
    """The model reply contained no candidate JSON text."""

    def __init__(self, original: str = ""):
        super().__init__("No JSON found in response text")
        self.original = original


class JsonParseFailure(CardNoteError):
    """A JSON candidate was found but could not be parsed into an object."""

    def __init__(self, message: str, candidate: str, original: str):
        super().__init__(message)
        self.candidate = candidate
        self.original = original


class RenderFailure(CardNoteError):
    """The image bytes could not be decoded into a raster."""


class EncodeFailure(CardNoteError):
    """A rotated raster could not be serialized back to bytes."""
