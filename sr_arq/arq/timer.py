"""
Timer Management for Selective Repeat ARQ

This module provides the per-entity timers used by the emulator. Each
entity owns at most one timer; starting it again re-arms the deadline
and stopping a stopped timer does nothing.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict
from enum import Enum
import heapq

from .environment import Entity


class TimerState(Enum):
    """Timer state enumeration."""
    STOPPED = 0
    RUNNING = 1
    EXPIRED = 2


@dataclass(order=True)
class TimerEvent:
    """Timer event for priority queue management."""
    expiry_time: float
    entity: Entity = field(compare=False)
    generation: int = field(compare=False)  # To invalidate re-armed or stopped timers


@dataclass
class EntityTimer:
    """
    Single timer owned by one entity.

    Attributes:
        entity: Owning entity
        timeout: Duration of the current arming
        start_time: Time when timer was (re)started
        state: Current timer state
        generation: Incremented on every start and stop
    """
    entity: Entity
    timeout: float = 0.0
    start_time: float = 0.0
    state: TimerState = TimerState.STOPPED
    generation: int = 0

    def start(self, current_time: float, timeout: float):
        """
        Start or re-arm the timer.

        Args:
            current_time: Current simulation time
            timeout: Duration until expiry
        """
        self.start_time = current_time
        self.timeout = timeout
        self.state = TimerState.RUNNING
        self.generation += 1

    def stop(self):
        """Stop the timer."""
        if self.state == TimerState.RUNNING:
            self.generation += 1
        self.state = TimerState.STOPPED

    @property
    def is_running(self) -> bool:
        """Check if the timer is armed."""
        return self.state == TimerState.RUNNING

    def get_expiry_time(self) -> float:
        """Get the absolute expiry time."""
        return self.start_time + self.timeout


class TimerManager:
    """
    Manages one timer per entity.

    Uses a priority queue (min-heap) of expiry events; events left behind
    by a re-arm or stop are discarded lazily via the generation counter.

    Attributes:
        timers: Timer for each entity
        timer_queue: Priority queue of timer events
    """

    def __init__(self):
        self.timers: Dict[Entity, EntityTimer] = {
            entity: EntityTimer(entity=entity) for entity in Entity
        }
        self.timer_queue: List[TimerEvent] = []

        # Statistics
        self.total_timeouts = 0
        self.total_timers_started = 0

    def start_timer(self, entity: Entity, current_time: float, timeout: float):
        """
        Start (or re-arm) an entity's timer.

        Args:
            entity: Owning entity
            current_time: Current simulation time
            timeout: Duration until expiry
        """
        if timeout <= 0:
            raise ValueError("Timer duration must be positive")

        timer = self.timers[entity]
        timer.start(current_time, timeout)
        self.total_timers_started += 1

        heapq.heappush(self.timer_queue, TimerEvent(
            expiry_time=timer.get_expiry_time(),
            entity=entity,
            generation=timer.generation
        ))

    def stop_timer(self, entity: Entity):
        """
        Stop an entity's timer.

        Args:
            entity: Owning entity
        """
        self.timers[entity].stop()
        # Don't remove from queue - filtered on pop

    def is_running(self, entity: Entity) -> bool:
        """Check if an entity's timer is armed."""
        return self.timers[entity].is_running

    def _is_current(self, event: TimerEvent) -> bool:
        """Check that a queued event still matches a running timer."""
        timer = self.timers[event.entity]
        return timer.is_running and timer.generation == event.generation

    def check_timeouts(self, current_time: float) -> List[Entity]:
        """
        Expire every timer whose deadline has passed.

        Args:
            current_time: Current simulation time

        Returns:
            Entities whose timers expired, in expiry order
        """
        expired = []

        while self.timer_queue:
            event = self.timer_queue[0]
            if event.expiry_time > current_time:
                break

            heapq.heappop(self.timer_queue)
            if not self._is_current(event):
                continue

            self.timers[event.entity].state = TimerState.EXPIRED
            self.total_timeouts += 1
            expired.append(event.entity)

        return expired

    def get_next_expiry(self) -> Optional[float]:
        """
        Get the time of the next timer expiry.

        Returns:
            Next expiry time or None if no timer is running
        """
        while self.timer_queue:
            event = self.timer_queue[0]
            if self._is_current(event):
                return event.expiry_time
            heapq.heappop(self.timer_queue)

        return None

    def clear_all(self):
        """Stop all timers."""
        for timer in self.timers.values():
            timer.stop()
        self.timer_queue.clear()

    def get_active_count(self) -> int:
        """Get number of running timers."""
        return sum(1 for t in self.timers.values() if t.is_running)

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'total_timers_started': self.total_timers_started,
            'total_timeouts': self.total_timeouts,
            'active_timers': self.get_active_count()
        }
