"""
SkySniper — Crash Multiplier Prediction Aggregator.

Architecture:
    skysniper/
    ├── api/             # FastAPI routers (HTTP layer)
    ├── middleware/      # Error handling, request context
    ├── schemas/         # Pydantic request/response models
    ├── engine/          # Pure computation (analytics, consensus, fallback)
    └── services/        # Stateful + I/O (cache, latency, oracle, orchestrator, audit)

Data Flow:
    Request → Validate → Cache → Analytics → Prompt → Oracle fan-out (x3)
    → Consensus merge | Fallback → Cache → Latency monitor → Audit log

Module Boundaries:
    - The forecasting oracle is EXTERNAL — any single call may fail or time out
    - The system ALWAYS answers; total oracle failure yields a fallback forecast
    - Engine modules hold no shared state; cache and latency monitor are
      owned by the app container and injected

Version: 1.0.0
"""

__version__ = "1.0.0"
