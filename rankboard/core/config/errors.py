"""Errors raised by ConfigManager."""


class ConfigError(Exception):
    pass


class ConfigValidationError(ConfigError):
    """An override was rejected (empty key, or a section replaced by a scalar)."""


class ConfigInitializationError(ConfigError):
    """A YAML file under config/ exists but could not be read or parsed."""
