"""Business logic layer for storage app.

This package contains all business logic for storage bookkeeping:
- Quota ledger (reserve/release of stored bytes)
- Folder tree with materialized paths and cascading delete
- File upload, download, delete and duplicate
- Notes, tags and dashboard summaries

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
