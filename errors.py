"""
Exceptions raised by the dashboard.

Two kinds of failure matter to the request handler:
- InvalidRequestError: missing or malformed form parameters
- NetSuiteError: NetSuite rejected a call (HTTP status >= 400)

Both abort the current action and end up in the error redirect.
"""

from typing import Optional


class WFProcessingError(Exception):
    """Base class for every error the dashboard raises on purpose."""


class InvalidRequestError(WFProcessingError, ValueError):
    """Input validation failed."""


class NetSuiteError(WFProcessingError):
    """
    A NetSuite REST call failed.

    Attributes:
        status_code: HTTP status returned by NetSuite (None for transport errors)
        body: raw response text, kept for the log
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)
