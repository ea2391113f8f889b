"""Errors raised while reading module metadata."""

from __future__ import annotations


class MetadataError(Exception):
    """Base class for metadata reading failures."""


class ModuleFormatError(MetadataError):
    """The bytes are not a module carrying CLI metadata."""


class SignatureError(MetadataError):
    """A signature blob is truncated or uses an unsupported encoding."""
