"""
RepriseVal Engine - deterministic financial resolution and validation.

Turns per-year extraction records into canonical indicators, ratios, sector
comparisons, alerts, coherence checks and a data-quality score.

Key Principles:
1. Pure and deterministic - same input, same output; no clock, env or network
2. Resolve, never invent - a year without figures is reported, not zero-filled
3. Rules are data - thresholds live in the alert rule table
4. Isolation - a failing rule or check never aborts the pass
"""
