"""
Simulation package - Network emulator and batch runners.

Contains:
- Event-driven emulator hosting both protocol entities
- Batch runner for parameter sweeps
"""

from .simulator import Simulator, SimulatorConfig
from .runner import BatchRunner

__all__ = [
    'Simulator',
    'SimulatorConfig',
    'BatchRunner'
]
