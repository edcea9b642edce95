from __future__ import annotations


class MixerError(Exception):
    """Base class for errors raised by the mixer service."""


class ConfigurationError(MixerError):
    """Startup configuration is unusable; the process must not start."""


class InvalidDatabaseError(MixerError):
    """A file is not a usable Bliss analysis database."""
