"""
Error taxonomy for plea handling.

Only PleaError subclasses cross the orchestrator boundary. Classifier,
tone generator and channel failures are recovered where they happen.
"""
from __future__ import annotations


class PleaError(Exception):
    """Terminal request failure with an HTTP status attached."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PleaValidationError(PleaError):
    status_code = 400


class EventExpiredError(PleaError):
    status_code = 410


class DirectoryFetchError(PleaError):
    """Guest list could not be loaded; no decision is possible without it."""

    status_code = 500


class ClassifierParseError(ValueError):
    """Classifier answered with something that is not a valid match result."""

    def __init__(self, message: str, raw_content: str):
        super().__init__(message)
        self.raw_content = raw_content


class ChannelError(RuntimeError):
    """A single SMS/email send failed."""


class ChannelNotConfiguredError(ChannelError):
    pass
