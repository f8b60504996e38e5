"""Failure classes raised inside a lookup.

None of these leave an adapter's ``fetch_value``; the strategy loop turns each
of them into "try the next candidate".
"""

from __future__ import annotations

from typing import Optional


SERVICE_EXCEPTION_MARKERS = ("ServiceException", "ExceptionReport", "ows:Exception")


class LookupFailure(Exception):
    pass


class NetworkTimeout(LookupFailure):
    pass


class UpstreamError(LookupFailure):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class EmptyResult(LookupFailure):
    pass


class LicenseRestricted(EmptyResult):
    """Upstream answered, but the value is only released against a fee."""


class ParseFailure(LookupFailure):
    pass


class ConfigurationGap(LookupFailure):
    def __init__(self, state: str):
        super().__init__(f"no adapter registered for {state!r}")
        self.state = state


def has_service_exception(text: str) -> bool:
    return any(marker in (text or "") for marker in SERVICE_EXCEPTION_MARKERS)
