"""
Text generation backends for life events.

The engine only depends on ``TextGenerator.generate(context, kind)``. Two
backends ship here: a canned generator drawing from fixed pools (the default
mock) and a Gemini generator.
"""
import asyncio
import json
import logging
import random
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Union

from google import genai
from google.genai import types

from lifepath.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

KIND_MILESTONE = "milestone"
KIND_PREDICTION = "prediction"

MAX_CONTENT_LENGTH = 280

CAREER_MILESTONES = (
    "Graduate with a degree in a high-demand field",
    "Land first professional job with competitive salary",
    "Take risky career pivot into emerging industry",
    "Start own business venture with personal savings",
    "Secure major investment for scaling business",
    "Lead company through difficult market conditions",
    "Make bold acquisition of competitor business",
    "Achieve executive position through strategic risks",
    "Create innovative product that disrupts market",
    "Successfully sell startup for significant profit",
)

RISK_MILESTONES = (
    "Move to new city without secured employment",
    "Invest substantial savings in volatile stock",
    "Quit stable job to pursue passion project",
    "Take extended sabbatical to travel worldwide",
    "Back risky but promising technological innovation",
    "Bet on yourself with major career ultimatum",
    "Publicly challenge industry conventional wisdom",
    "Invest in property in developing market region",
    "Launch controversial product against market advice",
    "Make significant career decision against family wishes",
)

PREDICTION_OUTCOMES = (
    "This leads to a major success in your career",
    "This results in personal growth and new opportunities",
    "This causes unexpected changes in your relationships",
    "This opens doors to new experiences",
    "This brings both challenges and rewards",
    "This creates a turning point in your life story",
    "This may not go as planned but teaches valuable lessons",
    "This becomes a defining moment in your journey",
)

# Used when a backend answers with nothing usable
FALLBACK_TEXT = {
    KIND_MILESTONE: "Reach a quiet but meaningful personal milestone",
    KIND_PREDICTION: "This brings both challenges and rewards",
}

PROMPT_TEMPLATES = {
    KIND_MILESTONE: (
        "You are planning a simulated life.\n"
        "{context}\n\n"
        "Reply with ONE concrete life milestone, at most 12 words, no quotes."
    ),
    KIND_PREDICTION: (
        "You are a fortune teller for a simulated life.\n"
        "{context}\n\n"
        "Reply with ONE possible outcome of this event, at most 12 words, no quotes."
    ),
}


class TextGenerationError(RuntimeError):
    """The backend failed (network, timeout, parse)."""


def usable_text(text: object, kind: str) -> str:
    """Return ``text`` if it can be shown on a node, otherwise the fixed fallback."""
    if isinstance(text, str):
        cleaned = text.strip()
        if cleaned:
            return cleaned[:MAX_CONTENT_LENGTH]
    return FALLBACK_TEXT.get(kind, FALLBACK_TEXT[KIND_MILESTONE])


class TextGenerator(ABC):
    """Context string in, candidate text out."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    async def generate(self, context: str, kind: str) -> str:
        """Generate one candidate text; raise TextGenerationError on failure."""
        raise NotImplementedError

    async def generate_batch(
        self, contexts: Sequence[str], kind: str
    ) -> List[Union[str, BaseException]]:
        """One result (or the raised exception) per context, in order."""
        return await asyncio.gather(
            *(self.generate(context, kind) for context in contexts),
            return_exceptions=True,
        )


class CannedTextGenerator(TextGenerator):
    """Mock backend: fixed pools, optional simulated latency."""

    POOLS = {
        KIND_MILESTONE: CAREER_MILESTONES + RISK_MILESTONES,
        KIND_PREDICTION: PREDICTION_OUTCOMES,
    }

    def __init__(self, latency: float = 0.0, rng: Optional[random.Random] = None):
        self.latency = latency
        self._rng = rng or random.Random()

    async def generate(self, context: str, kind: str) -> str:
        pool = self.POOLS.get(kind)
        if pool is None:
            raise TextGenerationError(f"Unsupported generation kind: {kind}")
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        return self._rng.choice(pool)


class GeminiTextGenerator(TextGenerator):
    """Gemini Flash backend."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[genai.Client] = None,
    ):
        self.config = config or default_settings
        self.client = client or genai.Client(api_key=self.config.gemini_api_key)
        self.model = self.config.gemini_flash_model
        self.timeout = self.config.generation_timeout_seconds

    def _build_prompt(self, context: str, kind: str) -> str:
        template = PROMPT_TEMPLATES.get(kind)
        if template is None:
            raise TextGenerationError(f"Unsupported generation kind: {kind}")
        return template.format(context=context)

    def _strip_code_block(self, text: str) -> str:
        """Remove code fence markers."""
        cleaned = text.strip()
        if cleaned.startswith("```"):
            cleaned = re.sub(r"^```[a-zA-Z]*\n?", "", cleaned)
            cleaned = cleaned.rstrip("`").strip()
        return cleaned

    def _extract_text(self, response) -> str:
        text = ""
        if hasattr(response, "candidates") and response.candidates:
            for part in response.candidates[0].content.parts:
                if hasattr(part, "text") and part.text:
                    # skip thought parts, keep the answer only
                    if not (hasattr(part, "thought") and part.thought):
                        text += part.text
        if not text and getattr(response, "text", None):
            text = response.text
        return text

    def _normalize(self, raw: str) -> str:
        """Accept plain text, a JSON string/list, or {"text": ...}."""
        cleaned = self._strip_code_block(raw)
        try:
            parsed = json.loads(cleaned)
        except (ValueError, TypeError):
            parsed = None
        if isinstance(parsed, str):
            cleaned = parsed
        elif isinstance(parsed, list) and parsed and isinstance(parsed[0], str):
            cleaned = parsed[0]
        elif isinstance(parsed, dict) and isinstance(parsed.get("text"), str):
            cleaned = parsed["text"]
        cleaned = cleaned.strip().splitlines()[0] if cleaned.strip() else ""
        return cleaned.strip().strip('"').strip()

    async def generate(self, context: str, kind: str) -> str:
        prompt = self._build_prompt(context, kind)
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=types.GenerateContentConfig(temperature=0.8),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise TextGenerationError(f"Gemini timed out after {self.timeout}s") from exc
        except Exception as exc:
            raise TextGenerationError(f"Gemini request failed: {exc}") from exc

        text = self._normalize(self._extract_text(response))
        logger.debug("Gemini %s -> %r", kind, text)
        return text


def create_text_generator(config: Optional[Settings] = None) -> TextGenerator:
    """Build the backend selected by ``TEXT_GENERATOR``."""
    config = config or default_settings
    if config.text_generator == "gemini":
        return GeminiTextGenerator(config)
    return CannedTextGenerator(latency=config.canned_latency_seconds)
