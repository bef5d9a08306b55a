"""Startup failures. Anything below these is absorbed where it is detected."""


class AddressPointError(Exception):
    """Base class for failures that keep the service from starting."""

    error_code = "ADDRESSPOINT_ERROR"


class ConfigError(AddressPointError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class DatasetError(AddressPointError):
    """Raised when the address point dataset cannot be opened or read."""

    error_code = "DATASET_ERROR"
