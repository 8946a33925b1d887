"""
Selective Repeat ARQ - reliable in-order delivery over an unreliable channel.

Subpackages:
- arq: protocol state machines, packets and timers
- channel: unreliable channel model for the emulator
- utils: logging and metrics
"""

__version__ = "1.0.0"
