"""
Packet Structure for Selective Repeat ARQ Protocol

This module defines the fixed packet format shared by data packets and
ACKs, its wire encoding, and helpers for building checksummed packets.
"""

import struct
from dataclasses import dataclass, replace
from typing import Union

from ..config import NOTINUSE, PAYLOAD_SIZE
from .checksum import compute_checksum, is_corrupted


def make_payload(data: Union[bytes, bytearray]) -> bytes:
    """
    Pad application data to the fixed payload size.

    Args:
        data: Message bytes (at most PAYLOAD_SIZE)

    Returns:
        Exactly PAYLOAD_SIZE bytes, zero-padded
    """
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Payload must be bytes")
    if len(data) > PAYLOAD_SIZE:
        raise ValueError(f"Payload too large (max {PAYLOAD_SIZE} bytes)")
    return bytes(data).ljust(PAYLOAD_SIZE, b'\x00')


@dataclass(frozen=True)
class Packet:
    """
    Network packet exchanged between entity A and entity B.

    Wire Layout (32 bytes):
        - Sequence Number: 4 bytes (signed int)
        - ACK Number: 4 bytes (signed int, NOTINUSE for data)
        - Checksum: 4 bytes (signed int)
        - Payload: 20 bytes

    Attributes:
        seqnum: Sequence number (data) or alternating 0/1 counter (ACK)
        acknum: Acknowledged sequence number, NOTINUSE on data packets
        checksum: Additive checksum over the other fields
        payload: Fixed-size payload
    """

    seqnum: int
    acknum: int = NOTINUSE
    checksum: int = 0
    payload: bytes = bytes(PAYLOAD_SIZE)

    WIRE_FORMAT = f'!iii{PAYLOAD_SIZE}s'  # Network byte order
    WIRE_SIZE = struct.calcsize(WIRE_FORMAT)

    def __post_init__(self):
        """Validate packet after initialization."""
        if not isinstance(self.payload, bytes):
            raise ValueError("Payload must be bytes")
        if len(self.payload) != PAYLOAD_SIZE:
            raise ValueError(f"Payload must be exactly {PAYLOAD_SIZE} bytes")

    @property
    def is_ack(self) -> bool:
        """Check if this packet acknowledges data."""
        return self.acknum != NOTINUSE

    def is_corrupted(self) -> bool:
        """Check the packet against its checksum."""
        return is_corrupted(self)

    def with_checksum(self) -> 'Packet':
        """Return a copy carrying a freshly computed checksum."""
        return replace(self, checksum=compute_checksum(self))

    def serialize(self) -> bytes:
        """
        Serialize the packet to bytes.

        Returns:
            Wire encoding of all four fields
        """
        return struct.pack(
            self.WIRE_FORMAT,
            self.seqnum,
            self.acknum,
            self.checksum,
            self.payload
        )

    @classmethod
    def deserialize(cls, data: bytes) -> 'Packet':
        """
        Deserialize bytes to a Packet.

        The checksum is carried over as-is; use is_corrupted() to verify it.

        Args:
            data: Serialized packet bytes

        Returns:
            Decoded packet
        """
        if len(data) != cls.WIRE_SIZE:
            raise ValueError(
                f"Expected {cls.WIRE_SIZE} bytes, got {len(data)}"
            )
        seqnum, acknum, checksum, payload = struct.unpack(cls.WIRE_FORMAT, data)
        return cls(seqnum=seqnum, acknum=acknum, checksum=checksum, payload=payload)

    @classmethod
    def create_data_packet(cls, seqnum: int, data: bytes) -> 'Packet':
        """
        Create a checksummed DATA packet.

        Args:
            seqnum: Sequence number
            data: Application message (padded to PAYLOAD_SIZE)

        Returns:
            DATA packet
        """
        packet = cls(seqnum=seqnum, acknum=NOTINUSE, payload=make_payload(data))
        return packet.with_checksum()

    @classmethod
    def create_ack_packet(cls, seqnum: int, acknum: int) -> 'Packet':
        """
        Create a checksummed ACK packet.

        Args:
            seqnum: Receiver's alternating 0/1 counter
            acknum: Sequence number being acknowledged

        Returns:
            ACK packet with a zeroed payload
        """
        return cls(seqnum=seqnum, acknum=acknum).with_checksum()

    def __repr__(self) -> str:
        kind = "ACK" if self.is_ack else "DATA"
        return (f"Packet(type={kind}, seq={self.seqnum}, ack={self.acknum}, "
                f"checksum={self.checksum}, payload={self.payload!r})")
