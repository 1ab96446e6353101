"""Utility functions for logging, configuration, errors, and serialization."""

from ridecast.utils.error_handling import (
    InvalidBoundary,
    NonConvergence,
    NonConvergenceWarning,
    RecoveryContext,
    RidecastError,
)
from ridecast.utils.config_manager import ConfigManager
from ridecast.utils.logging_config import setup_logging

__all__ = [
    "InvalidBoundary",
    "NonConvergence",
    "NonConvergenceWarning",
    "RecoveryContext",
    "RidecastError",
    "ConfigManager",
    "setup_logging",
]
