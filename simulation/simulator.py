"""
Main Simulator - Event-Driven Network Emulator

This module implements the discrete-event emulator that hosts the two
protocol entities: it generates application messages for entity A,
carries packets over an unreliable channel in each direction, runs the
per-entity timers, and collects what entity B delivers.
"""

from typing import Optional, Dict, List
from dataclasses import dataclass, field
from enum import Enum
import heapq
import itertools
import time

import numpy as np

from sr_arq.config import (
    NUM_MESSAGES, LOSS_PROB, CORRUPT_PROB, MESSAGE_INTERVAL,
    WINDOW_SIZE, RTT, PAYLOAD_SIZE, MAX_SIMULATION_TIME
)
from sr_arq.arq.environment import Entity
from sr_arq.arq.packet import Packet
from sr_arq.arq.protocol import SelectiveRepeat
from sr_arq.arq.timer import TimerManager
from sr_arq.channel.unreliable import UnreliableChannel
from sr_arq.utils.metrics import MetricsCollector
from sr_arq.utils.logger import SimulationLogger, LogLevel


class EventType(Enum):
    """Types of simulation events."""
    FROM_APPLICATION = 0  # Application hands a message to entity A
    PACKET_ARRIVAL = 1    # Channel delivers a packet to an entity


@dataclass(order=True)
class SimEvent:
    """Simulation event (ties broken by scheduling order)."""
    time: float
    order: int
    event_type: EventType = field(compare=False)
    entity: Entity = field(compare=False)
    data: dict = field(compare=False, default_factory=dict)


@dataclass
class SimulatorConfig:
    """Configuration for the emulator."""
    # Traffic
    num_messages: int = NUM_MESSAGES
    message_interval: float = MESSAGE_INTERVAL

    # Channel
    loss_prob: float = LOSS_PROB
    corrupt_prob: float = CORRUPT_PROB

    # Protocol
    window_size: int = WINDOW_SIZE
    timeout: float = RTT

    # Simulation parameters
    seed: int = 42
    max_time: float = MAX_SIMULATION_TIME
    log_level: int = LogLevel.WARNING
    log_file: Optional[str] = None

    def __post_init__(self):
        if self.num_messages < 0:
            raise ValueError("num_messages must be non-negative")
        if self.message_interval <= 0:
            raise ValueError("message_interval must be positive")
        for name in ('loss_prob', 'corrupt_prob'):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1")

    def to_dict(self) -> dict:
        """Parameters worth reporting with results."""
        return {
            'num_messages': self.num_messages,
            'message_interval': self.message_interval,
            'loss_prob': self.loss_prob,
            'corrupt_prob': self.corrupt_prob,
            'window_size': self.window_size,
            'timeout': self.timeout,
            'seed': self.seed
        }


class Simulator:
    """
    Event-Driven Emulator.

    Acts as the protocol environment for both entities: packets sent by
    A travel over the forward channel, ACKs sent by B over the reverse
    channel.
    """

    def __init__(self, config: SimulatorConfig):
        """Initialize simulator."""
        self.config = config

        self.logger = SimulationLogger(
            name="Emu",
            level=config.log_level,
            log_file=config.log_file
        )
        self.metrics = MetricsCollector()

        # Channel model for forward path (data)
        self.forward_channel = UnreliableChannel(
            loss_prob=config.loss_prob,
            corrupt_prob=config.corrupt_prob,
            seed=config.seed
        )
        # Channel model for reverse path (ACKs)
        self.reverse_channel = UnreliableChannel(
            loss_prob=config.loss_prob,
            corrupt_prob=config.corrupt_prob,
            seed=config.seed + 1000
        )

        # Application message arrivals
        self.traffic_rng = np.random.default_rng(config.seed + 2000)

        self.timers = TimerManager()
        self.protocol = SelectiveRepeat(
            self,
            window_size=config.window_size,
            timeout=config.timeout,
            metrics=self.metrics,
            logger=self.logger
        )

        # Simulation state
        self.current_time = 0.0
        self.event_queue: List[SimEvent] = []
        self._order = itertools.count()

        # Data tracking
        self.messages_generated = 0
        self.accepted_messages: List[bytes] = []
        self.delivered_messages: List[bytes] = []

    # ------------------------------------------------------------------
    # Protocol environment
    # ------------------------------------------------------------------

    def send_to_channel(self, entity: Entity, packet: Packet):
        """Carry a packet from an entity toward its peer."""
        channel = self.forward_channel if entity is Entity.A else self.reverse_channel

        result = channel.transmit(packet, self.current_time)
        if result is None:
            self.metrics.record_packet_lost()
            self.logger.debug(f"{entity.name}: packet {packet.seqnum}/{packet.acknum} lost", "CHANNEL")
            return

        arrival_time, received, corrupted = result
        if corrupted:
            self.metrics.record_packet_corrupted()
            self.logger.debug(f"{entity.name}: packet {packet.seqnum}/{packet.acknum} corrupted", "CHANNEL")

        self._schedule_event(
            arrival_time,
            EventType.PACKET_ARRIVAL,
            entity.peer,
            {'packet': received}
        )

    def deliver_to_application(self, entity: Entity, payload: bytes):
        """Collect a payload delivered by an entity."""
        self.delivered_messages.append(payload)

    def start_timer(self, entity: Entity, duration: float):
        """Start or re-arm an entity's timer."""
        self.timers.start_timer(entity, self.current_time, duration)

    def stop_timer(self, entity: Entity):
        """Stop an entity's timer."""
        self.timers.stop_timer(entity)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def _schedule_event(self, time: float, event_type: EventType,
                        entity: Entity, data: dict = None):
        """Schedule an event."""
        event = SimEvent(
            time=time,
            order=next(self._order),
            event_type=event_type,
            entity=entity,
            data=data or {}
        )
        heapq.heappush(self.event_queue, event)

    @staticmethod
    def make_message(index: int) -> bytes:
        """Message number index: PAYLOAD_SIZE copies of one letter."""
        return bytes([ord('a') + index % 26]) * PAYLOAD_SIZE

    def _schedule_next_message(self):
        """Schedule the next application message, if any remain."""
        if self.messages_generated >= self.config.num_messages:
            return
        gap = self.config.message_interval * 2 * self.traffic_rng.random()
        self._schedule_event(
            self.current_time + gap,
            EventType.FROM_APPLICATION,
            Entity.A
        )

    def _handle_application_message(self):
        """Hand the next message to entity A."""
        message = self.make_message(self.messages_generated)
        self.messages_generated += 1
        self.metrics.record_message_offered()

        if self.protocol.on_application_message(Entity.A, message):
            self.accepted_messages.append(message)
            self.metrics.record_message_accepted()

        self._schedule_next_message()

    def _handle_packet_arrival(self, event: SimEvent):
        """Hand an arriving packet to its entity."""
        self.protocol.on_packet_arrival(event.entity, event.data['packet'])

    def _handle_timeouts(self):
        """Fire expired timers."""
        for entity in self.timers.check_timeouts(self.current_time):
            self.protocol.on_timer_expiry(entity)

    def _verify_delivery(self) -> Dict:
        """Compare what B delivered with what A accepted."""
        accepted = self.accepted_messages
        delivered = self.delivered_messages

        first_mismatch = None
        for i, (sent, got) in enumerate(zip(accepted, delivered)):
            if sent != got:
                first_mismatch = i
                break

        return {
            'valid': accepted == delivered,
            'accepted': len(accepted),
            'delivered': len(delivered),
            'first_mismatch': first_mismatch
        }

    def _is_complete(self) -> bool:
        """Check if every message was generated and every accepted one delivered."""
        return (self.messages_generated >= self.config.num_messages and
                len(self.delivered_messages) >= len(self.accepted_messages))

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def reset(self, seed: Optional[int] = None):
        """Reset simulator."""
        if seed is not None:
            self.config.seed = seed

        self.forward_channel.reset(self.config.seed)
        self.reverse_channel.reset(self.config.seed + 1000)
        self.traffic_rng = np.random.default_rng(self.config.seed + 2000)

        self.timers.clear_all()
        self.metrics.reset()
        self.protocol.init(Entity.A)
        self.protocol.init(Entity.B)

        self.current_time = 0.0
        self.logger.set_sim_time(0.0)
        self.event_queue.clear()
        self._order = itertools.count()

        self.messages_generated = 0
        self.accepted_messages = []
        self.delivered_messages = []

    def close(self):
        """Release the log file, if any."""
        self.logger.close()

    def run(self) -> Dict:
        """Run the simulation."""
        self.reset()

        self.metrics.start(0.0)
        self.logger.simulation_start(self.config.to_dict())
        sim_start_real = time.time()

        self._schedule_next_message()

        while True:
            next_event = self.event_queue[0].time if self.event_queue else None
            next_timer = self.timers.get_next_expiry()

            if next_event is None and next_timer is None:
                break

            if next_timer is not None and (next_event is None or next_timer < next_event):
                if next_timer > self.config.max_time:
                    break
                self.current_time = next_timer
                self.logger.set_sim_time(self.current_time)
                self._handle_timeouts()
                continue

            if next_event > self.config.max_time:
                break

            event = heapq.heappop(self.event_queue)
            self.current_time = event.time
            self.logger.set_sim_time(self.current_time)

            if event.event_type == EventType.FROM_APPLICATION:
                self._handle_application_message()
            elif event.event_type == EventType.PACKET_ARRIVAL:
                self._handle_packet_arrival(event)

        self.metrics.finish(self.current_time)
        sim_end_real = time.time()

        metrics_summary = self.metrics.get_summary()
        self.logger.simulation_end(metrics_summary)

        return {
            'config': self.config.to_dict(),
            'metrics': metrics_summary,
            'channels': {
                'forward': self.forward_channel.get_statistics(),
                'reverse': self.reverse_channel.get_statistics()
            },
            'timers': self.timers.get_statistics(),
            'sender': self.protocol.sender.get_window_state(),
            'receiver': self.protocol.receiver.get_window_state(),
            'verification': self._verify_delivery(),
            'log': self.logger.get_summary(),
            'real_time': sim_end_real - sim_start_real,
            'simulation_time': self.current_time,
            'complete': self._is_complete()
        }
