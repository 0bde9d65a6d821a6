"""
Prediction Audit Log.

Writes every final result to a PostgREST table (Supabase `predictions` by
default). Without a configured URL the record is only logged.

The audit log is fire-and-forget from the caller's point of view:
failures are wrapped as PersistenceError, logged, and never re-raised.
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

import httpx
import structlog

from skysniper.config import settings
from skysniper.engine.consensus import ConsensusResult
from skysniper.exceptions import PersistenceError

logger = structlog.get_logger(__name__)

AUDIT_INPUT_WINDOW = 10


def build_audit_record(
    result: ConsensusResult,
    strategy: str,
    series: Sequence[float],
    models_used: int,
) -> dict:
    return {
        "prediction": result.prediction,
        "confidence": result.confidence,
        "comment": result.comment,
        "strategy": strategy,
        "risk_level": result.risk_level,
        "input_data": {"crash_points": [float(v) for v in series[-AUDIT_INPUT_WINDOW:]]},
        "models_used": models_used or 1,
        "voting_consensus": result.voting_consensus or 1,
        "fallback": result.fallback,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


class PredictionAuditLog:
    """PostgREST-backed audit sink. Never raises to the caller."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        table: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (settings.audit_url if base_url is None else base_url).rstrip("/")
        self.api_key = settings.audit_api_key if api_key is None else api_key
        self.table = table or settings.audit_table
        self.timeout = timeout or settings.audit_timeout_seconds
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def record_prediction(
        self,
        result: ConsensusResult,
        strategy: str,
        series: Sequence[float],
        models_used: int = 0,
    ) -> bool:
        """Persist one result. Returns True when the write succeeded."""
        record = build_audit_record(result, strategy, series, models_used)

        if not self.enabled:
            logger.info("prediction_audit", **record)
            return True

        try:
            await self._insert(record)
            return True
        except PersistenceError as e:
            logger.error("prediction_audit_failed", error=e.message, table=self.table)
            return False

    async def _insert(self, record: dict) -> None:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/rest/v1/{self.table}", json=record, headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise PersistenceError(f"Audit write failed: {e}") from e
