"""Core (UI-agnostic) rail delay tracker logic.

This package contains:
- export loading (JSON -> pandas)
- filter normalization
- record aggregation helpers
- page compute functions (JSON-serializable payloads)
- the batch deduplication script
"""
