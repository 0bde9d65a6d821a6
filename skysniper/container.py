"""
Composition root.

Builds the process-wide components once per app instance. Nothing in the
package holds a module-level cache or monitor; everything is reached
through the container on app.state.
"""

from dataclasses import dataclass
from typing import Optional

from skysniper.config import Settings, settings as default_settings
from skysniper.engine.analytics import AnalyticsEngine
from skysniper.services.audit_log import PredictionAuditLog
from skysniper.services.cache import TTLCache
from skysniper.services.latency import LatencyMonitor
from skysniper.services.oracle import ChatCompletionsOracle, OracleClient
from skysniper.services.orchestrator import Posture, PredictionOrchestrator
from skysniper.services.scheduler import CacheSweepScheduler


@dataclass
class AppContainer:
    cache: TTLCache
    latency_monitor: LatencyMonitor
    orchestrator: PredictionOrchestrator
    sweeper: CacheSweepScheduler


def build_container(
    config: Optional[Settings] = None,
    oracle: Optional[OracleClient] = None,
    audit_log: Optional[PredictionAuditLog] = None,
) -> AppContainer:
    """Wire cache, monitor, oracle, audit log and orchestrator together."""
    config = config or default_settings

    cache = TTLCache(
        max_size=config.cache_max_size,
        default_ttl=config.cache_ttl_seconds,
    )
    latency_monitor = LatencyMonitor(
        window_size=config.latency_window_size,
        thresholds=config.latency_thresholds,
    )
    orchestrator = PredictionOrchestrator(
        oracle=oracle or ChatCompletionsOracle(
            api_key=config.oracle_api_key,
            base_url=config.oracle_base_url,
            model=config.oracle_model,
            max_tokens=config.oracle_max_tokens,
            top_p=config.oracle_top_p,
            timeout=config.oracle_timeout_seconds,
        ),
        cache=cache,
        latency_monitor=latency_monitor,
        audit_log=audit_log or PredictionAuditLog(
            base_url=config.audit_url,
            api_key=config.audit_api_key,
            table=config.audit_table,
            timeout=config.audit_timeout_seconds,
        ),
        engine=AnalyticsEngine(
            seed=config.monte_carlo_seed,
            monte_carlo_trials=config.monte_carlo_trials,
        ),
        postures=(
            Posture("conservative", config.temperature_conservative),
            Posture("balanced", config.temperature_balanced),
            Posture("aggressive", config.temperature_aggressive),
        ),
        call_timeout=config.oracle_timeout_seconds,
        cache_ttl=config.cache_ttl_seconds,
        min_series_length=config.min_series_length,
        analysis_window=config.analysis_window,
    )
    sweeper = CacheSweepScheduler(cache, config.cache_sweep_interval_seconds)

    return AppContainer(
        cache=cache,
        latency_monitor=latency_monitor,
        orchestrator=orchestrator,
        sweeper=sweeper,
    )
