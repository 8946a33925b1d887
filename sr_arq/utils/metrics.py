"""
Metrics Collection and Calculation

This module provides the counter sink the protocol entities report to,
plus the derived performance figures (throughput, retransmission rate,
delivery ratio) computed at the end of a run.
"""

from typing import Optional, Dict


class MetricsCollector:
    """
    Collects protocol event counts for a run.

    Primary metric: Throughput = Delivered Messages / Total Simulation Time

    Attributes:
        start_time: Simulation start time
        end_time: Simulation end time
    """

    def __init__(self):
        """Initialize metrics collector."""
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.reset_counters()

    def reset_counters(self):
        """Zero every counter."""
        # Application side
        self.messages_offered = 0
        self.messages_accepted = 0
        self.window_full_rejections = 0
        self.messages_delivered = 0
        self.bytes_delivered = 0

        # Sender side
        self.data_packets_sent = 0
        self.retransmissions = 0
        self.timeouts = 0
        self.acks_accepted = 0
        self.duplicate_acks = 0
        self.corrupted_acks = 0

        # Receiver side
        self.data_packets_received = 0
        self.duplicate_packets = 0
        self.corrupted_packets = 0
        self.acks_sent = 0

        # Channel
        self.packets_lost = 0
        self.packets_corrupted_in_channel = 0

    def start(self, time: float):
        """
        Mark simulation start.

        Args:
            time: Start time
        """
        self.start_time = time

    def finish(self, time: float):
        """
        Mark simulation end.

        Args:
            time: End time
        """
        self.end_time = time

    def record_message_offered(self):
        """Record a message handed down by the sending application."""
        self.messages_offered += 1

    def record_message_accepted(self):
        """Record a message accepted into the send window."""
        self.messages_accepted += 1

    def record_window_full(self):
        """Record a message rejected because the send window was full."""
        self.window_full_rejections += 1

    def record_data_sent(self):
        """Record an original (non-retransmitted) data packet."""
        self.data_packets_sent += 1

    def record_retransmission(self):
        """Record a data packet retransmission."""
        self.retransmissions += 1

    def record_timeout(self):
        """Record a sender timer expiry."""
        self.timeouts += 1

    def record_ack_accepted(self):
        """Record an ACK that acknowledged a new packet."""
        self.acks_accepted += 1

    def record_duplicate_ack(self):
        """Record an ACK for an already-acked or unknown packet."""
        self.duplicate_acks += 1

    def record_corrupted_ack(self):
        """Record a corrupted ACK dropped by the sender."""
        self.corrupted_acks += 1

    def record_data_received(self):
        """Record an uncorrupted data packet at the receiver."""
        self.data_packets_received += 1

    def record_duplicate_packet(self):
        """Record a data packet that was already buffered, delivered or out of window."""
        self.duplicate_packets += 1

    def record_corrupted_packet(self):
        """Record a corrupted data packet dropped by the receiver."""
        self.corrupted_packets += 1

    def record_ack_sent(self):
        """Record an ACK sent by the receiver."""
        self.acks_sent += 1

    def record_delivered(self, payload_bytes: int):
        """
        Record a payload delivered in order to the application.

        Args:
            payload_bytes: Delivered payload size
        """
        self.messages_delivered += 1
        self.bytes_delivered += payload_bytes

    def record_packet_lost(self):
        """Record a packet dropped by the channel."""
        self.packets_lost += 1

    def record_packet_corrupted(self):
        """Record a packet tampered with by the channel."""
        self.packets_corrupted_in_channel += 1

    @property
    def total_time(self) -> float:
        """Elapsed simulation time (0 until finished)."""
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    def calculate_throughput(self) -> float:
        """
        Calculate throughput.

        Throughput = Delivered Messages / Total Simulation Time

        Returns:
            Messages per time unit
        """
        if self.total_time <= 0:
            return 0.0
        return self.messages_delivered / self.total_time

    def calculate_retransmission_rate(self) -> float:
        """
        Calculate retransmission rate.

        Returns:
            Retransmissions / Original Packets Sent
        """
        if self.data_packets_sent <= 0:
            return 0.0
        return self.retransmissions / self.data_packets_sent

    def calculate_delivery_ratio(self) -> float:
        """
        Calculate delivery ratio.

        Returns:
            Delivered Messages / Accepted Messages
        """
        if self.messages_accepted <= 0:
            return 0.0
        return self.messages_delivered / self.messages_accepted

    def get_summary(self) -> Dict:
        """
        Get metrics summary.

        Returns:
            Dictionary with all counters and derived figures
        """
        return {
            'total_time': self.total_time,
            'throughput': self.calculate_throughput(),
            'retransmission_rate': self.calculate_retransmission_rate(),
            'delivery_ratio': self.calculate_delivery_ratio(),

            'messages_offered': self.messages_offered,
            'messages_accepted': self.messages_accepted,
            'window_full_rejections': self.window_full_rejections,
            'messages_delivered': self.messages_delivered,
            'bytes_delivered': self.bytes_delivered,

            'data_packets_sent': self.data_packets_sent,
            'retransmissions': self.retransmissions,
            'timeouts': self.timeouts,
            'acks_accepted': self.acks_accepted,
            'duplicate_acks': self.duplicate_acks,
            'corrupted_acks': self.corrupted_acks,

            'data_packets_received': self.data_packets_received,
            'duplicate_packets': self.duplicate_packets,
            'corrupted_packets': self.corrupted_packets,
            'acks_sent': self.acks_sent,

            'packets_lost': self.packets_lost,
            'packets_corrupted_in_channel': self.packets_corrupted_in_channel,
        }

    def reset(self):
        """Reset all metrics."""
        self.start_time = None
        self.end_time = None
        self.reset_counters()
