"""
Selective Repeat ARQ Sender

This module implements the sender side (entity A) of the Selective Repeat
ARQ protocol: a circular send window, per-packet ACK tracking, and a
single retransmission timer bound to the oldest unacknowledged packet.
"""

from typing import Optional, List

from ..config import WINDOW_SIZE, RTT
from ..utils.logger import SimulationLogger, get_logger
from ..utils.metrics import MetricsCollector
from .environment import Entity, ProtocolEnvironment
from .packet import Packet
from .seqnum import SequenceSpace


class SRSender:
    """
    Selective Repeat ARQ Sender (entity A).

    Implements the sender side of SR-ARQ with:
    - Circular window of up to W unacknowledged packets
    - Per-packet ACK status
    - One timer, always tracking the oldest unacked packet
    - Retransmission of that single packet on timeout

    Attributes:
        window_size: Size of the send window
        timeout: Retransmission timeout
        buffer: Slots holding outstanding packets
        acked: Per-slot ACK flags
        window_first: Slot of the oldest unacked packet
        window_last: Slot of the most recently sent packet
        window_count: Number of outstanding packets
        next_seq: Sequence number for the next new packet
        timer_seq: Sequence number the timer currently tracks
    """

    def __init__(
        self,
        env: ProtocolEnvironment,
        window_size: int = WINDOW_SIZE,
        timeout: float = RTT,
        metrics: Optional[MetricsCollector] = None,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR sender.

        Args:
            env: Channel and timer services
            window_size: Send window size
            timeout: Retransmission timeout
            metrics: Counter sink (a private one is created if None)
            logger: Logger (the global logger if None)
        """
        if timeout <= 0:
            raise ValueError("Timeout must be positive")

        self.env = env
        self.window_size = window_size
        self.timeout = timeout
        self.seq_space = SequenceSpace(window_size)

        self.metrics = metrics if metrics is not None else MetricsCollector()
        self.logger = logger or get_logger()

        self.init()

    def init(self):
        """Reset the sender to an empty window (A_init)."""
        self.buffer: List[Optional[Packet]] = [None] * self.window_size
        self.acked: List[bool] = [False] * self.window_size
        self.window_first = 0
        self.window_last = self.window_size - 1
        self.window_count = 0
        self.next_seq = 0
        self.timer_seq: Optional[int] = None

    @property
    def is_full(self) -> bool:
        """Check if window is full."""
        return self.window_count >= self.window_size

    def output(self, message: bytes) -> bool:
        """
        Send an application message (A_output).

        Args:
            message: Message bytes (at most PAYLOAD_SIZE)

        Returns:
            True if the message was sent, False if the window was full
        """
        if self.is_full:
            self.metrics.record_window_full()
            self.logger.window_full(self.window_size)
            return False

        packet = Packet.create_data_packet(self.next_seq, message)

        self.window_last = (self.window_last + 1) % self.window_size
        self.buffer[self.window_last] = packet
        self.acked[self.window_last] = False
        self.window_count += 1

        self.env.send_to_channel(Entity.A, packet)
        self.metrics.record_data_sent()
        self.logger.packet_sent(Entity.A.name, packet.seqnum, "DATA")

        if self.window_count == 1:
            self._arm_timer(packet.seqnum)

        self.next_seq = self.seq_space.next(self.next_seq)
        return True

    def input(self, packet: Packet) -> bool:
        """
        Process an ACK from the receiver (A_input).

        Args:
            packet: Arriving ACK packet

        Returns:
            True if the ACK acknowledged a packet for the first time
        """
        if packet.is_corrupted():
            self.metrics.record_corrupted_ack()
            self.logger.packet_received(Entity.A.name, packet.acknum, False)
            return False

        slot = self._find_slot(packet.acknum)
        if slot is None or self.acked[slot]:
            self.metrics.record_duplicate_ack()
            self.logger.duplicate_ack(packet.acknum)
            return False

        self.acked[slot] = True
        self.metrics.record_ack_accepted()
        self.logger.ack_received(packet.acknum)

        self._slide_window()

        if packet.acknum == self.timer_seq:
            self.env.stop_timer(Entity.A)
            self.timer_seq = None
            if self.window_count > 0:
                self._arm_timer(self.buffer[self.window_first].seqnum)

        return True

    def timer_interrupt(self) -> Optional[Packet]:
        """
        Handle expiry of the retransmission timer (A_timerinterrupt).

        Only the packet the timer tracks is resent.

        Returns:
            The retransmitted packet, or None for a stale expiry
        """
        if self.timer_seq is None:
            self.logger.debug("Timer fired with an empty window", "TIMEOUT")
            return None

        self.metrics.record_timeout()
        self.logger.timeout(self.timer_seq)

        slot = self._find_slot(self.timer_seq)
        if slot is None:
            self.logger.error(
                f"Timer tracks {self.timer_seq} which is not in the window", "TIMEOUT"
            )
            self.timer_seq = None
            return None

        packet = self.buffer[slot]
        self.env.send_to_channel(Entity.A, packet)
        self.metrics.record_retransmission()
        self.logger.retransmit(packet.seqnum)

        self._arm_timer(packet.seqnum)
        return packet

    def _find_slot(self, seq_num: int) -> Optional[int]:
        """
        Locate the occupied slot holding a sequence number.

        Args:
            seq_num: Sequence number to look for

        Returns:
            Slot index or None if not outstanding
        """
        for i in range(self.window_count):
            slot = (self.window_first + i) % self.window_size
            if self.buffer[slot].seqnum == seq_num:
                return slot
        return None

    def _slide_window(self):
        """Slide the window forward past consecutive acknowledged packets."""
        while self.window_count > 0 and self.acked[self.window_first]:
            self.acked[self.window_first] = False
            self.buffer[self.window_first] = None
            self.window_first = (self.window_first + 1) % self.window_size
            self.window_count -= 1
        self.logger.window_update(self.window_first, self.window_count, self.next_seq)

    def _arm_timer(self, seq_num: int):
        """Start the timer and bind it to a sequence number."""
        self.env.start_timer(Entity.A, self.timeout)
        self.timer_seq = seq_num

    def outstanding(self) -> List[int]:
        """Sequence numbers in the window, oldest first."""
        return [
            self.buffer[(self.window_first + i) % self.window_size].seqnum
            for i in range(self.window_count)
        ]

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'window_first': self.window_first,
            'window_last': self.window_last,
            'window_count': self.window_count,
            'next_seq': self.next_seq,
            'timer_seq': self.timer_seq,
            'outstanding': self.outstanding(),
            'acked': [
                self.acked[(self.window_first + i) % self.window_size]
                for i in range(self.window_count)
            ]
        }
