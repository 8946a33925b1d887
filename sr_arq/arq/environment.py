"""
Protocol Environment

The services an SR entity needs from the world around it: a channel to
hand packets to, an application to deliver payloads to, and one timer
per entity.
"""

from enum import Enum
from typing import Protocol

from .packet import Packet


class Entity(Enum):
    """Protocol entity enumeration."""
    A = 0  # Sender
    B = 1  # Receiver

    @property
    def peer(self) -> 'Entity':
        """The entity on the other end of the channel."""
        return Entity.B if self is Entity.A else Entity.A


class ProtocolEnvironment(Protocol):
    """
    Interface the protocol entities call out to.

    start_timer on a running timer re-arms its deadline; stop_timer on a
    stopped timer is a no-op.
    """

    def send_to_channel(self, entity: Entity, packet: Packet) -> None:
        """Hand a packet to the unreliable channel (fire and forget)."""
        ...

    def deliver_to_application(self, entity: Entity, payload: bytes) -> None:
        """Hand an in-order payload to the application."""
        ...

    def start_timer(self, entity: Entity, duration: float) -> None:
        """Start (or re-arm) the entity's timer."""
        ...

    def stop_timer(self, entity: Entity) -> None:
        """Stop the entity's timer."""
        ...
