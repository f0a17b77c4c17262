"""Errors raised while reading configuration."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A configuration value is present but unusable (e.g. a non-integer page size)."""


class MissingConfigurationError(ConfigurationError):
    """One or more required environment variables are unset or blank."""
