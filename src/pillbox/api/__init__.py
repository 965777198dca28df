"""HTTP transport for the schedule engine."""

from pillbox.api.app import create_app

__all__ = ["create_app"]
