"""
Unreliable Channel Model

This module implements the one-way channel the emulator places between
the two protocol entities. Each packet handed to it may be lost, may have
one field tampered with, and is delayed by a random transit time.
"""

import numpy as np
from dataclasses import replace
from enum import Enum
from typing import Optional, Tuple

from ..config import (
    LOSS_PROB, CORRUPT_PROB, MIN_CHANNEL_DELAY, MAX_CHANNEL_JITTER,
    CORRUPT_PAYLOAD_SHARE, CORRUPT_SEQNUM_SHARE, CORRUPT_ACKNUM_SHARE
)
from ..arq.packet import Packet


class CorruptedField(Enum):
    """Packet field hit by a corruption."""
    PAYLOAD = 0
    SEQNUM = 1
    ACKNUM = 2
    CHECKSUM = 3


class UnreliableChannel:
    """
    One direction of a lossy, corrupting, delaying channel.

    Packets arrive in the order they were sent; a 2W sequence space
    requires it.

    Attributes:
        loss_prob: Probability a packet is dropped
        corrupt_prob: Probability a surviving packet is tampered with
        min_delay: Minimum transit time
        max_jitter: Maximum extra random transit time
        rng: Random number generator
    """

    def __init__(
        self,
        loss_prob: float = LOSS_PROB,
        corrupt_prob: float = CORRUPT_PROB,
        min_delay: float = MIN_CHANNEL_DELAY,
        max_jitter: float = MAX_CHANNEL_JITTER,
        seed: Optional[int] = None
    ):
        """
        Initialize the channel.

        Args:
            loss_prob: Probability of losing a packet (0-1)
            corrupt_prob: Probability of corrupting a packet (0-1)
            min_delay: Minimum one-way delay
            max_jitter: Maximum additional uniform delay
            seed: Random seed for reproducibility
        """
        for name, prob in (('loss_prob', loss_prob), ('corrupt_prob', corrupt_prob)):
            if not 0.0 <= prob <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1")
        if min_delay <= 0 or max_jitter < 0:
            raise ValueError("Delays must be positive")

        self.loss_prob = loss_prob
        self.corrupt_prob = corrupt_prob
        self.min_delay = min_delay
        self.max_jitter = max_jitter

        self.rng = np.random.default_rng(seed)

        # Arrival time of the last packet still in flight (FIFO ordering)
        self.last_arrival = 0.0

        # Statistics tracking
        self.packets_offered = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        self.corrupted_fields = {f: 0 for f in CorruptedField}

    def is_lost(self) -> bool:
        """Decide whether the next packet is dropped."""
        return self.rng.random() < self.loss_prob

    def corrupt(self, packet: Packet) -> Tuple[Packet, CorruptedField]:
        """
        Tamper with exactly one field of a packet.

        The tampered value always differs from the original, so the
        additive checksum detects it.

        Args:
            packet: Original packet

        Returns:
            Tuple of (tampered copy, field that was changed)
        """
        x = self.rng.random()
        delta = int(self.rng.integers(1, 256))

        if x < CORRUPT_PAYLOAD_SHARE:
            payload = bytearray(packet.payload)
            index = int(self.rng.integers(0, len(payload)))
            payload[index] = (payload[index] + delta) % 256
            return replace(packet, payload=bytes(payload)), CorruptedField.PAYLOAD
        if x < CORRUPT_PAYLOAD_SHARE + CORRUPT_SEQNUM_SHARE:
            return replace(packet, seqnum=packet.seqnum + delta), CorruptedField.SEQNUM
        if x < CORRUPT_PAYLOAD_SHARE + CORRUPT_SEQNUM_SHARE + CORRUPT_ACKNUM_SHARE:
            return replace(packet, acknum=packet.acknum + delta), CorruptedField.ACKNUM
        return replace(packet, checksum=packet.checksum + delta), CorruptedField.CHECKSUM

    def arrival_time(self, current_time: float) -> float:
        """
        Calculate when a packet sent now reaches the far end.

        Args:
            current_time: Send time

        Returns:
            Absolute arrival time
        """
        transit = self.min_delay + self.max_jitter * self.rng.random()

        # Never arrive before a packet already in flight
        arrival = max(current_time, self.last_arrival) + transit
        self.last_arrival = arrival
        return arrival

    def transmit(
        self,
        packet: Packet,
        current_time: float
    ) -> Optional[Tuple[float, Packet, bool]]:
        """
        Push a packet through the channel.

        Args:
            packet: Packet to send
            current_time: Send time

        Returns:
            None if lost, otherwise (arrival_time, packet_as_received, corrupted)
        """
        self.packets_offered += 1

        if self.is_lost():
            self.packets_lost += 1
            return None

        corrupted = False
        if self.rng.random() < self.corrupt_prob:
            packet, hit = self.corrupt(packet)
            corrupted = True
            self.packets_corrupted += 1
            self.corrupted_fields[hit] += 1

        return self.arrival_time(current_time), packet, corrupted

    def get_statistics(self) -> dict:
        """Get channel statistics."""
        offered = self.packets_offered
        return {
            'packets_offered': offered,
            'packets_lost': self.packets_lost,
            'packets_corrupted': self.packets_corrupted,
            'observed_loss_rate': self.packets_lost / offered if offered else 0.0,
            'observed_corruption_rate': (
                self.packets_corrupted / offered if offered else 0.0
            ),
            'corrupted_fields': {f.name: n for f, n in self.corrupted_fields.items()}
        }

    def reset(self, seed: Optional[int] = None):
        """
        Reset channel state and statistics.

        Args:
            seed: New random seed (optional)
        """
        if seed is not None:
            self.rng = np.random.default_rng(seed)

        self.last_arrival = 0.0
        self.packets_offered = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        self.corrupted_fields = {f: 0 for f in CorruptedField}
