"""
Sync engine components for incremental multi-source ingestion.

Modules:
    base: SourcePipeline, the fetch -> normalize -> sink contract per provider
    http: Shared JSON request layer and provider error classification
    registry: Static map of source ids to pipelines
    range_resolver: Explicit, scheduled and cursor-derived windows
    cursor_store: Durable per-source cursors
    runner: SyncRunner orchestrator with per-source failure isolation
    run_log: Audit row per source per invocation
    scheduler: APScheduler jobs (hourly ad/payment sources, daily storefront)
    archive: Best-effort raw page archive

Subpackages:
    extractors: One pipeline per provider (Stripe, Meta, TikTok, MailerLite, Steam)
    transformers: Pure normalizers and enrichment
    loaders: Idempotent sinks (relational, CSV tabs) and the lazy sink provider

Architecture:
    Every invocation resolves windows, then for each source:

    1. Fetch - page through the provider in pagination order
    2. Normalize - map raw records to canonical records
    3. Write - upsert by natural key; replays write nothing
    4. Advance - move the cursor to the window's upper bound, on success only

    One source failing never stops the others.

Usage:
    from ingestion.range_resolver import parse_range
    from ingestion.runner import SyncRunner

    window = parse_range("2024-01-01T00:00:00Z", "2024-01-31T23:59:59Z")
    results = await runner.run(window, ["stripe", "meta"])

    print(results["stripe"].to_dict())
"""

__all__ = [
    "base",
    "http",
    "registry",
    "range_resolver",
    "cursor_store",
    "runner",
    "run_log",
    "scheduler",
    "archive",
]
