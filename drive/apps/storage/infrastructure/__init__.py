"""Infrastructure layer for storage app.

This package contains integrations with external systems:
- S3-compatible blob store for file bytes
- Metadata extraction (MIME type, checksum, file category)

Keep infrastructure concerns separate from business logic.
"""
