"""API v1 endpoints."""

__all__ = [
    "backup",
    "children",
    "health",
    "records",
    "settings",
]
