"""Vision model client and prompts."""

from .openai import VisionClient, parse_score

__all__ = ["VisionClient", "parse_score"]
