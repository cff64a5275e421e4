"""CDK Stack definitions for the RDC workstation."""

from .config import ConfigError, load_config
from .rdc_stack import RdcStack

__all__ = [
    "ConfigError",
    "RdcStack",
    "load_config"
]
