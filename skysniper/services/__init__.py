"""
Stateful and I/O services.

- cache: bounded TTL cache for consensus results
- latency: per-operation latency windows and degradation signals
- oracle: chat-completions client and strict vote decoding
- prompt_builder: oracle prompt rendering
- orchestrator: parallel fan-out, merge / fallback, full request flow
- audit_log: persistence of final results
- scheduler: periodic cache sweep
"""
