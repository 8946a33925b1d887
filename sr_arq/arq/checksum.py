"""
Packet Checksum

Additive integrity code used to detect (not correct) corruption.
The checksum covers every packet field except itself.

Note that an additive sum cannot catch changes that cancel out, e.g. one
payload byte raised by 1 and another lowered by 1. Any single tampered
field is always detected.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .packet import Packet


def compute_checksum(packet: 'Packet') -> int:
    """
    Calculate the checksum of a packet.

    checksum = seqnum + acknum + sum(payload bytes)

    Args:
        packet: Packet to checksum (its own checksum field is ignored)

    Returns:
        Integer checksum
    """
    return packet.seqnum + packet.acknum + sum(packet.payload)


def is_corrupted(packet: 'Packet') -> bool:
    """Check whether a packet's fields no longer match its stored checksum."""
    return packet.checksum != compute_checksum(packet)
