"""
SkySniper Prediction Engine — pure, stateless computation.

Components:
- analytics: Series statistics, pattern signals, streak state
- consensus: Strategy-dependent merge of oracle votes
- fallback: Deterministic closed-form forecast
"""
