# accent_picker/errors.py
from __future__ import annotations

"""
Error types raised by accent extraction.
"""


class InvalidConfiguration(ValueError):
    """A configuration value or execution argument is out of range."""


class ExecutionFailure(RuntimeError):
    """A worker failed; the invocation produced no colour."""


__all__ = ["InvalidConfiguration", "ExecutionFailure"]
