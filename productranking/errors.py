"""Exceptions raised by the training pipeline."""


class ConfigurationError(ValueError):
    """Training cannot proceed with the given data or parameters."""
