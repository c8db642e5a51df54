"""OpenAI vision client for readability scoring and contact extraction."""

import logging
import re
from typing import Optional

from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from ..config import VisionConfig
from ..contact.parser import parse_contact
from ..contact.schema import ContactRecord
from ..errors import ScoringRequestFailure, TransportFailure
from .prompts import CONTACT_PROMPT, READABILITY_PROMPT

logger = logging.getLogger(__name__)

SCORE_MAX_TOKENS = 5
MIN_SCORE = 0
MAX_SCORE = 10

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_score(reply: Optional[str]) -> int:
    """Read a readability score from the model reply.

    Anything that does not start with an integer scores 0. Values are
    clamped into the 0-10 range.
    """
    if not reply:
        return MIN_SCORE
    match = _LEADING_INT.match(reply)
    if not match:
        return MIN_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, int(match.group(1))))


class VisionClient:
    """Chat Completions client for single-image prompts.

    Requests are not retried: a failed call fails the current image.
    """

    def __init__(self, config: VisionConfig):
        self.config = config
        self.model = config.model
        self.client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
        )

    async def _complete(
        self,
        prompt: str,
        image_base64: str,
        mime_type: str,
        max_tokens: Optional[int] = None,
        failure: type[TransportFailure] = TransportFailure,
    ) -> str:
        """Send one text + image message and return the reply text."""
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{mime_type};base64,{image_base64}"},
                    },
                ],
            },
        ]
        options = {"max_tokens": max_tokens} if max_tokens is not None else {}

        logger.debug(
            f"[LLM] Model: {self.model}, image: {len(image_base64)} base64 chars, "
            f"max_tokens: {max_tokens or 'default'}"
        )

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                **options,
            )
        except APIStatusError as e:
            body = e.response.text if e.response is not None else None
            logger.error(f"[LLM] API error {e.status_code}: {(body or '')[:200]}")
            raise failure(
                f"OpenAI API error {e.status_code}",
                status_code=e.status_code,
                body=body,
            ) from e
        except APIConnectionError as e:
            logger.error(f"[LLM] Request failed: {type(e).__name__}: {e}")
            raise failure(f"OpenAI request failed: {e}") from e

        if not response.choices:
            return ""
        content = response.choices[0].message.content or ""
        preview = content[:100].replace("\n", " ")
        logger.debug(f"[LLM] Response ({len(content)} chars): {preview}")
        return content

    async def score(self, image_base64: str, mime_type: str) -> int:
        """Ask the model how readable the image is at its current orientation."""
        reply = await self._complete(
            READABILITY_PROMPT,
            image_base64,
            mime_type,
            max_tokens=SCORE_MAX_TOKENS,
            failure=ScoringRequestFailure,
        )
        return parse_score(reply)

    async def extract_contact(self, image_base64: str, mime_type: str) -> ContactRecord:
        """Recognize a business card and parse the reply into a ContactRecord.

        Raises:
            TransportFailure: If the request fails
            NoJsonFound: If the reply holds no JSON candidate
            JsonParseFailure: If the candidate is not a JSON object
        """
        logger.info(f"[LLM] Extracting contact ({len(image_base64)} base64 chars), mime: {mime_type}")
        reply = await self._complete(CONTACT_PROMPT, image_base64, mime_type)
        record = parse_contact(reply)
        logger.info(f"[LLM] Recognized contact: {record.name or '(no name)'}")
        return record
