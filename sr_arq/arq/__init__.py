"""
ARQ package - Selective Repeat ARQ protocol components.

Contains implementations for:
- Packet structure, checksum and wire encoding
- Sequence number arithmetic
- Sender with circular window and single retransmission timer
- Receiver with out-of-order buffering
- Per-entity timer management
"""

from .packet import Packet, make_payload
from .checksum import compute_checksum, is_corrupted
from .seqnum import SequenceSpace
from .environment import Entity, ProtocolEnvironment
from .sender import SRSender
from .receiver import SRReceiver
from .protocol import SelectiveRepeat
from .timer import TimerManager, EntityTimer, TimerState

__all__ = [
    'Packet',
    'make_payload',
    'compute_checksum',
    'is_corrupted',
    'SequenceSpace',
    'Entity',
    'ProtocolEnvironment',
    'SRSender',
    'SRReceiver',
    'SelectiveRepeat',
    'TimerManager',
    'EntityTimer',
    'TimerState'
]
