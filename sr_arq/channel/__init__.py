"""
Channel package - Unreliable channel model.

Contains implementations for:
- Lossy, corrupting, delaying channel used by the emulator
"""

from .unreliable import UnreliableChannel, CorruptedField

__all__ = [
    'UnreliableChannel',
    'CorruptedField'
]
