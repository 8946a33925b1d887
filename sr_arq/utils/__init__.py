"""
Utilities package - Helper functions and classes.

Contains implementations for:
- Protocol metrics collection
- Logging utilities
"""

from .metrics import MetricsCollector
from .logger import SimulationLogger, LogLevel, get_logger

__all__ = [
    'MetricsCollector',
    'SimulationLogger',
    'LogLevel',
    'get_logger'
]
