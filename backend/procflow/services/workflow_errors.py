"""Exceptions raised by the workflow parsers and the mutation engine."""

from __future__ import annotations


class WorkflowParseError(ValueError):
    """Raised when workflow text cannot be turned into a BusinessProcess."""


class MutationError(ValueError):
    """Raised when a mutation payload is missing fields or carries bad values."""


class UnsupportedFormatError(WorkflowParseError):
    """The input format is recognised but not parsed by this service."""
