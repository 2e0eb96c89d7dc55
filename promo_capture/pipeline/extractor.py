"""
Vision LLM extraction adapter.

Best effort by contract: any transport, inference or parse failure yields an
empty dict, and the capture workflow treats "nothing recognised" as a normal
outcome that an administrator corrects later. One attempt per image.
"""
from __future__ import annotations

import base64
import json
import logging
import re
from typing import Any, Optional

from openai import OpenAI

from promo_capture.config import settings

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def image_data_url(image: bytes, mime_type: Optional[str] = None) -> str:
    mime = mime_type if mime_type and mime_type.startswith("image/") else "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(image).decode('ascii')}"


def parse_completion(content: Optional[str]) -> dict[str, Any]:
    """Strip Markdown fences and parse the JSON object the model returned."""
    text = _FENCE_RE.sub("", content or "").strip()
    if not text:
        return {}
    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


class VisionExtractor:
    def __init__(self, client: OpenAI, model: str, default_prompt: str):
        self.client = client
        self.model = model
        self.default_prompt = default_prompt

    def extract(
        self,
        image: bytes,
        prompt: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> dict[str, Any]:
        prompt = prompt or self.default_prompt
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {
                                "type": "image_url",
                                "image_url": {"url": image_data_url(image, mime_type)},
                            },
                        ],
                    }
                ],
            )
            content = response.choices[0].message.content if response.choices else ""
            result = parse_completion(content)
        except Exception as e:
            logger.error("Vision extraction failed: %s", e)
            return {}
        logger.info("Extracted keys: %s", sorted(result))
        return result


_extractor: Optional[VisionExtractor] = None


def get_extractor() -> VisionExtractor:
    global _extractor
    if _extractor is None:
        _extractor = VisionExtractor(
            client=OpenAI(api_key=settings.LLM_API_KEY, base_url=settings.LLM_BASE_URL),
            model=settings.LLM_MODEL,
            default_prompt=settings.DEFAULT_OCR_PROMPT,
        )
        logger.info("Vision extractor initialized with model %s", settings.LLM_MODEL)
    return _extractor
