"""
Selective Repeat Protocol Entry Points

Binds one sender (entity A) and one receiver (entity B) to an environment
and routes emulator events to the right state machine. Data flows from A
to B only; B never originates messages or runs a timer.
"""

from typing import Optional

from ..config import WINDOW_SIZE, RTT
from ..utils.logger import SimulationLogger
from ..utils.metrics import MetricsCollector
from .environment import Entity, ProtocolEnvironment
from .packet import Packet
from .receiver import SRReceiver
from .sender import SRSender


class SelectiveRepeat:
    """
    Simplex Selective Repeat endpoint pair.

    Attributes:
        sender: Entity A state machine
        receiver: Entity B state machine
        metrics: Shared counter sink
    """

    def __init__(
        self,
        env: ProtocolEnvironment,
        window_size: int = WINDOW_SIZE,
        timeout: float = RTT,
        metrics: Optional[MetricsCollector] = None,
        logger: Optional[SimulationLogger] = None
    ):
        self.metrics = metrics if metrics is not None else MetricsCollector()
        self.sender = SRSender(
            env,
            window_size=window_size,
            timeout=timeout,
            metrics=self.metrics,
            logger=logger
        )
        self.receiver = SRReceiver(
            env,
            window_size=window_size,
            metrics=self.metrics,
            logger=logger
        )

    def init(self, entity: Entity):
        """Reset one entity's state."""
        if entity is Entity.A:
            self.sender.init()
        else:
            self.receiver.init()

    def on_application_message(self, entity: Entity, message: bytes) -> bool:
        """
        Application asks an entity to send a message.

        Returns:
            True if accepted into the send window
        """
        if entity is not Entity.A:
            raise ValueError("Only entity A sends data in simplex mode")
        return self.sender.output(message)

    def on_packet_arrival(self, entity: Entity, packet: Packet):
        """Channel delivers a packet to an entity."""
        if entity is Entity.A:
            self.sender.input(packet)
        else:
            self.receiver.input(packet)

    def on_timer_expiry(self, entity: Entity):
        """An entity's timer fired."""
        if entity is not Entity.A:
            raise ValueError("Entity B has no timer in simplex mode")
        self.sender.timer_interrupt()
