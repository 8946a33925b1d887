"""
Selective Repeat ARQ Receiver

This module implements the receiver side (entity B) of the Selective Repeat
ARQ protocol, including the receive window, out-of-order buffering,
in-order delivery, and per-packet ACK generation.
"""

from typing import Optional, List

from ..config import WINDOW_SIZE
from ..utils.logger import SimulationLogger, get_logger
from ..utils.metrics import MetricsCollector
from .environment import Entity, ProtocolEnvironment
from .packet import Packet
from .seqnum import SequenceSpace


class SRReceiver:
    """
    Selective Repeat ARQ Receiver (entity B).

    Slot 0 of the buffer always holds the packet for rcv_base. Every
    uncorrupted arrival is ACKed individually, whether or not it is
    buffered.

    Attributes:
        window_size: Size of the receive window
        rcv_base: Next sequence number to deliver
        buffer: Slots for in-window arrivals
        received: Per-slot arrival flags
        ack_seq: Alternating 0/1 counter stamped on outgoing ACKs
    """

    def __init__(
        self,
        env: ProtocolEnvironment,
        window_size: int = WINDOW_SIZE,
        metrics: Optional[MetricsCollector] = None,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR receiver.

        Args:
            env: Channel and application services
            window_size: Receive window size
            metrics: Counter sink (a private one is created if None)
            logger: Logger (the global logger if None)
        """
        self.env = env
        self.window_size = window_size
        self.seq_space = SequenceSpace(window_size)

        self.metrics = metrics if metrics is not None else MetricsCollector()
        self.logger = logger or get_logger()

        self.init()

    def init(self):
        """Reset the receiver to an empty window (B_init)."""
        self.rcv_base = 0
        self.buffer: List[Optional[Packet]] = [None] * self.window_size
        self.received: List[bool] = [False] * self.window_size
        self.ack_seq = 0

    def input(self, packet: Packet) -> Optional[Packet]:
        """
        Process a data packet from the sender (B_input).

        Args:
            packet: Arriving data packet

        Returns:
            The ACK sent, or None if the packet was corrupted
        """
        if packet.is_corrupted():
            self.metrics.record_corrupted_packet()
            self.logger.packet_received(Entity.B.name, packet.seqnum, False)
            return None

        self.metrics.record_data_received()
        self.logger.packet_received(Entity.B.name, packet.seqnum, True)

        offset = self.seq_space.offset(packet.seqnum, self.rcv_base)
        if self.seq_space.in_window(packet.seqnum, self.rcv_base) and not self.received[offset]:
            self.buffer[offset] = packet
            self.received[offset] = True
            if offset == 0:
                self._deliver_in_order()
        else:
            # Already buffered, already delivered, or outside the window:
            # ACK again but never re-buffer.
            self.metrics.record_duplicate_packet()

        return self._send_ack(packet.seqnum)

    def _deliver_in_order(self):
        """Deliver the contiguous received prefix and shift the window."""
        while self.received[0]:
            packet = self.buffer[0]
            self.env.deliver_to_application(Entity.B, packet.payload)
            self.metrics.record_delivered(len(packet.payload))
            self.logger.delivered(packet.seqnum)

            self.buffer = self.buffer[1:] + [None]
            self.received = self.received[1:] + [False]
            self.rcv_base = self.seq_space.next(self.rcv_base)

    def _send_ack(self, seq_num: int) -> Packet:
        """
        Send an ACK for one sequence number.

        Args:
            seq_num: Sequence number to acknowledge

        Returns:
            ACK packet
        """
        ack = Packet.create_ack_packet(self.ack_seq, seq_num)
        self.ack_seq = (self.ack_seq + 1) % 2

        self.env.send_to_channel(Entity.B, ack)
        self.metrics.record_ack_sent()
        self.logger.ack_sent(seq_num)
        return ack

    def buffered(self) -> List[int]:
        """Sequence numbers currently held out of order."""
        return [
            self.buffer[i].seqnum
            for i in range(self.window_size) if self.received[i]
        ]

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'rcv_base': self.rcv_base,
            'size': self.window_size,
            'buffered': self.buffered(),
            'received': list(self.received),
            'ack_seq': self.ack_seq
        }
