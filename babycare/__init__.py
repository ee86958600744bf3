"""Baby care tracker: local record store, timezone normalization and backup."""

__version__ = "1.0.0"
