"""Generative-answer providers (paid LLM APIs).

The model is asked for the verbatim original lyrics or the LYRICS_NOT_FOUND
sentinel, never to write lyrics. Answers carrying refusal, hallucination or
truncation markers are dropped here, before they reach the scorer.
"""

import asyncio
import re
from abc import abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from openai import APIStatusError, OpenAI, OpenAIError, RateLimitError

from ....exceptions import ProviderTransportFailure, RateLimited, ValidationRejected
from ....utils.logging import ProviderTimer, get_logger
from ....utils.retry import FallbackChain
from ...models import Language, NormalizedQuery, ProviderCandidate
from ...scoring import HALLUCINATION_PHRASES
from .base import SLOW_TIMEOUT, ProviderAdapter
from .http import post_json

logger = get_logger(__name__)

NOT_FOUND_SENTINELS = ("LYRICS_NOT_FOUND", "NO_LYRICS_FOUND")

REFUSAL_MARKERS = (
    "찾을 수 없습니다",
    "정보가 없습니다",
    "죄송합니다",
    "I cannot find",
    "No lyrics found",
    "I don't have access",
    "I apologize",
    "I cannot provide",
    "I don't have",
)

# Phrases used when a model offers to write something of its own
INVENTION_MARKERS = (
    "만들어드릴게요",
    "생성해드리겠습니다",
    "제가 만든",
)

TRUNCATION_MARKERS = (
    "rest of the song",
    "rest of the lyrics",
    "rest of lyrics",
    "[continue",
    "(continue",
    "continue with",
)

REFUSAL_WINDOW = 300
MIN_LINES = 10
MIN_AVG_LINE_LENGTH = 5
GENERATIVE_CONFIDENCE = 0.75
MAX_TOKENS = 6000

_LANGUAGE_NAMES = {
    Language.KO: "Korean",
    Language.JA: "Japanese",
    Language.ZH: "Chinese",
    Language.EN: "English",
}


def build_prompt(query: NormalizedQuery) -> str:
    """Instruction asking for verbatim lyrics or the not-found sentinel."""
    lines = [
        f'Return ONLY the exact original lyrics for "{query.title}" by "{query.artist}".',
        "No commentary, no metadata, no translation, no romanization. Preserve line breaks.",
        "Do NOT fabricate, guess or complete lines you are not sure about.",
        f"If you do not know the exact lyrics, reply exactly: {NOT_FOUND_SENTINELS[0]}",
    ]
    language = _LANGUAGE_NAMES.get(query.expected_language)
    if language:
        lines.append(f"The song is most likely sung in {language}.")
    return "\n".join(lines)


def clean_response(content: str) -> str:
    """Strip code fences and a leading 'Here are the lyrics:' line."""
    text = (content or "").strip()
    text = re.sub(r"^```[a-zA-Z]*\n?", "", text)
    text = re.sub(r"\n?```$", "", text)
    first, _, rest = text.partition("\n")
    if rest and re.search(r"(lyrics|가사)[^\n]*[:：]\s*$", first, re.IGNORECASE):
        text = rest
    return text.strip()


def rejection_reason(text: str) -> Optional[str]:
    """Why a generated answer cannot be used as lyrics, or None."""
    if not text:
        return "empty"
    stripped = text.strip()
    if any(sentinel in stripped for sentinel in NOT_FOUND_SENTINELS):
        return "not_found_sentinel"
    lower = stripped.lower()
    # Refusals only count near the start of an answer
    head = lower[:REFUSAL_WINDOW]
    for marker in REFUSAL_MARKERS:
        if marker.lower() in head:
            return f"refusal: {marker}"
    for marker in INVENTION_MARKERS:
        if marker in stripped:
            return f"invention: {marker}"
    for phrase in HALLUCINATION_PHRASES:
        if phrase in lower:
            return f"hallucination: {phrase}"
    for marker in TRUNCATION_MARKERS:
        if marker in lower:
            return f"truncated: {marker}"
    lines = [line.strip() for line in stripped.split("\n")]
    if any(line in ("...", "…") for line in lines):
        return "truncated: ellipsis"
    non_empty = [line for line in lines if line]
    if len(non_empty) < MIN_LINES:
        return f"too_few_lines: {len(non_empty)}"
    avg_len = sum(len(line) for line in lines) / max(1, len(lines))
    if avg_len < MIN_AVG_LINE_LENGTH:
        return "lines_too_short"
    return None


def validate_answer(text: str) -> str:
    """
    Return a generated answer that can be scored as lyrics.

    Raises:
        ValidationRejected: If the answer is a refusal, invention or truncated
    """
    reason = rejection_reason(text)
    if reason:
        raise ValidationRejected(reason)
    return text


class GenerativeProvider(ProviderAdapter):
    """Base for LLM-backed providers with a rate-limit model fallback."""

    requires_credential = True
    timeout = 15.0
    slow = True
    default_models: Tuple[str, Optional[str]] = ("", None)

    @property
    def models(self) -> Tuple[str, Optional[str]]:
        primary, fallback = self.config.models.get(self.provider_id, (None, None))
        return primary or self.default_models[0], fallback or self.default_models[1]

    async def search(self, query: NormalizedQuery) -> List[ProviderCandidate]:
        primary, fallback = self.models
        chain = FallbackChain(
            primary,
            fallback,
            delay=self.config.rate_limit_retry_delay,
            name=self.provider_id,
        )

        async def call(model: str) -> List[ProviderCandidate]:
            return await asyncio.to_thread(self._search, query, model)

        return await chain.run(call)

    def _search(self, query: NormalizedQuery, model: Optional[str] = None) -> List[ProviderCandidate]:
        model = model or self.models[0]
        timer = ProviderTimer(f"{self.provider_id} ({model})", logger)
        content = self.complete(build_prompt(query), model)
        try:
            text = validate_answer(clean_response(content))
        except ValidationRejected as e:
            timer.skip(e.reason)
            return []

        timer.success(f"{len(text)} chars")
        return [self.candidate(
            text,
            base_confidence=GENERATIVE_CONFIDENCE,
            provider_metadata={"model": model},
        )]

    @abstractmethod
    def complete(self, prompt: str, model: str) -> str:
        """Send one prompt to the upstream API and return the answer text."""
        ...


class PerplexityProvider(GenerativeProvider):
    provider_id = "perplexity"
    priority = 7
    timeout = SLOW_TIMEOUT
    default_models = ("sonar-pro", "sonar")
    url = "https://api.perplexity.ai/chat/completions"

    def complete(self, prompt: str, model: str) -> str:
        data = post_json(
            self.provider_id,
            self.url,
            {
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.0,
                "max_tokens": MAX_TOKENS,
            },
            headers={"Authorization": f"Bearer {self.require_credential()}"},
            timeout=self.timeout,
            session=self.session,
        )
        return _chat_content(data)


class OpenAIProvider(GenerativeProvider):
    """OpenAI chat completions through the official SDK."""

    provider_id = "openai"
    priority = 6
    default_models = ("gpt-4o", "gpt-4o-mini")

    def __init__(self, config=None, session=None, client=None):
        super().__init__(config, session)
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            # Rate limits are handled by FallbackChain, not SDK retries
            self._client = OpenAI(
                api_key=self.require_credential(),
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def complete(self, prompt: str, model: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": "You are a strict lyrics lookup service."},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.0,
            )
        except RateLimitError as e:
            raise RateLimited(self.provider_id, str(e), status_code=429)
        except APIStatusError as e:
            raise ProviderTransportFailure(self.provider_id, str(e), status_code=e.status_code)
        except OpenAIError as e:
            raise ProviderTransportFailure(self.provider_id, str(e))

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class ClaudeProvider(GenerativeProvider):
    provider_id = "claude"
    priority = 5
    default_models = ("claude-3-5-sonnet-latest", "claude-3-5-haiku-latest")
    url = "https://api.anthropic.com/v1/messages"

    def complete(self, prompt: str, model: str) -> str:
        data = post_json(
            self.provider_id,
            self.url,
            {
                "model": model,
                "max_tokens": MAX_TOKENS,
                "messages": [{"role": "user", "content": prompt}],
            },
            headers={
                "x-api-key": self.require_credential(),
                "anthropic-version": "2023-06-01",
            },
            timeout=self.timeout,
            session=self.session,
        )
        blocks = data.get("content", []) if isinstance(data, dict) else []
        return "".join(b.get("text", "") for b in blocks if b.get("type") == "text")


class GeminiProvider(GenerativeProvider):
    provider_id = "gemini"
    priority = 4
    default_models = ("gemini-1.5-pro", "gemini-1.5-flash")
    url = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def complete(self, prompt: str, model: str) -> str:
        data = post_json(
            self.provider_id,
            self.url.format(model=model),
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": 0.0},
            },
            params={"key": self.require_credential()},
            timeout=self.timeout,
            session=self.session,
        )
        candidates = data.get("candidates", []) if isinstance(data, dict) else []
        if not candidates:
            return ""
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(p.get("text", "") for p in parts)


def _chat_content(data: Dict[str, Any]) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""
