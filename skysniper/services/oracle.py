"""
Forecasting Oracle — chat-completions integration.

Contract: given a prompt and a temperature, return the model's raw text.
The text must decode to exactly one JSON vote object; anything else is a
failed call.

- ChatCompletionsOracle: OpenAI-compatible endpoint (Groq by default)
- parse_vote: strict decode → VoteParseResult (vote | error), never raises
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from skysniper.config import settings
from skysniper.engine.consensus import ConfidenceLabel, ForecastVote, parse_multiplier
from skysniper.exceptions import OracleCallError

logger = structlog.get_logger(__name__)

CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


class OracleClient(Protocol):
    """Anything that turns (prompt, temperature) into raw completion text."""

    async def complete(self, prompt: str, temperature: float) -> str:
        ...


# ── Vote schema ──────────────────────────────────────────────────────────


class OracleVotePayload(BaseModel):
    """The exact object every oracle response must contain."""

    model_config = ConfigDict(extra="forbid")

    prediction: str
    confidence: ConfidenceLabel
    comment: str
    strategy: str
    entry_timing: str
    risk_level: int = Field(ge=1, le=10)
    pattern_signal: str
    mathematical_basis: str
    streak_factor: str
    volatility_adjustment: str

    @field_validator("prediction")
    @classmethod
    def _prediction_is_multiplier(cls, v: str) -> str:
        value = parse_multiplier(v)
        if not math.isfinite(value) or value < 1.0:
            raise ValueError("prediction must be a finite multiplier >= 1.0")
        return v.strip()


@dataclass(frozen=True)
class VoteParseResult:
    """Tagged decode result: exactly one of vote / error is set."""
    vote: Optional[ForecastVote] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.vote is not None


def strip_code_fences(text: str) -> str:
    return CODE_FENCE.sub("", text).strip()


def parse_vote(raw: str, temperature: Optional[float] = None, order: int = 0) -> VoteParseResult:
    """
    Decode one oracle response into a ForecastVote.

    Accepts a single JSON object, optionally wrapped in ``` fences.
    """
    text = strip_code_fences(raw or "")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return VoteParseResult(error=f"invalid JSON: {e.msg}")

    if not isinstance(data, dict):
        return VoteParseResult(error=f"expected JSON object, got {type(data).__name__}")

    try:
        payload = OracleVotePayload.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        return VoteParseResult(error=f"schema mismatch: {', '.join(fields)}")

    return VoteParseResult(vote=ForecastVote(
        prediction=payload.prediction,
        confidence=payload.confidence.value,
        risk_level=payload.risk_level,
        entry_timing=payload.entry_timing,
        comment=payload.comment,
        strategy=payload.strategy,
        pattern_signal=payload.pattern_signal,
        mathematical_basis=payload.mathematical_basis,
        streak_factor=payload.streak_factor,
        volatility_adjustment=payload.volatility_adjustment,
        temperature=temperature,
        order=order,
    ))


# ── HTTP client ──────────────────────────────────────────────────────────


class ChatCompletionsOracle:
    """Gateway for an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        top_p: float | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.oracle_api_key
        self.base_url = (base_url or settings.oracle_base_url).rstrip("/")
        self.model = model or settings.oracle_model
        self.max_tokens = max_tokens or settings.oracle_max_tokens
        self.top_p = top_p if top_p is not None else settings.oracle_top_p
        self.timeout = timeout or settings.oracle_timeout_seconds
        self._transport = transport
        if not self.api_key:
            logger.warning("oracle_api_key_missing", msg="Every oracle call will fail; fallback forecasts only")

    async def complete(self, prompt: str, temperature: float) -> str:
        """Return the first choice's message content. Raises OracleCallError."""
        if not self.api_key:
            raise OracleCallError("Oracle API key not configured", temperature=temperature)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions", json=payload, headers=headers
                )
        except httpx.HTTPError as e:
            logger.warning("oracle_transport_error", temperature=temperature, error=str(e))
            raise OracleCallError(f"Oracle request failed: {e}", temperature=temperature) from e

        if response.status_code != 200:
            logger.warning(
                "oracle_api_error",
                status=response.status_code,
                temperature=temperature,
                body=response.text[:500],
            )
            raise OracleCallError(
                f"Oracle API error: {response.status_code}", temperature=temperature
            )

        try:
            data = response.json()
            return data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise OracleCallError(
                f"Malformed oracle envelope: {e}", temperature=temperature
            ) from e
