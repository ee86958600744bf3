"""Pydantic schemas for stored documents and API payloads."""

__all__ = [
    "backup",
    "base",
    "child",
    "records",
    "settings",
    "summary",
]
