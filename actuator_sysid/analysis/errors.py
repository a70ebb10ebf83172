"""
Exceptions raised by the analysis pipeline.

All of them are synchronous failures: nothing is retried internally and the
caller is expected to adjust settings (or the input document) and try again.
"""

from __future__ import annotations


class SysIdError(RuntimeError):
    """Base class for analysis failures."""


class FormatError(SysIdError, ValueError):
    """The document is not a sysid document or names an unknown mechanism."""


class InsufficientDataError(SysIdError):
    """A test phase has too few rows for the configured window."""


class UnderdeterminedFitError(SysIdError):
    """Fewer usable rows than feedforward coefficients."""
