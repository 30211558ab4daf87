"""Payment gateway exceptions.

Views translate them into HTTP responses: ``GatewayNotConfigured`` into a
generic 500 (no internal detail), ``GatewayError`` into 502.
"""

from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    """The gateway answered non-2xx, sent garbage, or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class GatewayNotConfigured(Exception):
    """Credentials or public URLs required by the gateway are missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing payment settings: {', '.join(missing)}.")
