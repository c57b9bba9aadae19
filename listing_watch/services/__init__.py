"""
Service layer for the Listing Watch system.

This module contains configuration loading and the parameter and secret
lookups needed to complete it at runtime.
"""

from .aws_parameters import ParameterStore, SecretProvider, resolve_runtime_values
from .config_manager import ConfigurationManager

__all__ = [
    "ConfigurationManager",
    "ParameterStore",
    "SecretProvider",
    "resolve_runtime_values",
]
