"""
Typed errors for the captioner.

- ConfigurationError: missing API key or provider setup; the user must fix settings.
- ValidationError: bad user input (empty project name, zero images, oversized upload).
- ProviderError: a vision provider call failed (HTTP, transport, malformed response).
- ExportError: nothing to export.

Only ProviderError is raised inside the batch loop, and it never escapes it:
the failure is recorded on the image item and the run continues.
"""

from __future__ import annotations


class CaptionerError(RuntimeError):
    """Base class for captioner failures surfaced to the user."""


class ConfigurationError(CaptionerError):
    """Required configuration (e.g. the active provider's API key) is missing."""


class ValidationError(CaptionerError):
    """User input was rejected before any state was mutated."""


class ProviderError(CaptionerError):
    """A vision provider call failed."""


class ExportError(CaptionerError):
    """An export could not be produced."""


CAPTIONER_ERRORS = (
    ConfigurationError,
    ValidationError,
    ProviderError,
    ExportError,
)

__all__ = [
    "CaptionerError",
    "ConfigurationError",
    "ValidationError",
    "ProviderError",
    "ExportError",
    "CAPTIONER_ERRORS",
]
