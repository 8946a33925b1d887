"""
Simulation Logger

Console (and optional file) logging for the protocol entities and the
emulator. Lines are stamped with the current simulation time once the
emulator has set one, and every protocol event has its own helper so
call sites stay one line long.
"""

from typing import Optional, TextIO
from datetime import datetime
from enum import IntEnum
import os

from ..config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class SimulationLogger:
    """
    Logger for protocol and emulator events.

    Attributes:
        name: Tag printed on every line
        level: Minimum level that is emitted
        file: Open log file, if one was requested
        message_counts: Emitted lines per level
    """

    # Color codes for terminal output
    COLORS = {
        LogLevel.DEBUG: '\033[36m',     # Cyan
        LogLevel.INFO: '\033[32m',      # Green
        LogLevel.WARNING: '\033[33m',   # Yellow
        LogLevel.ERROR: '\033[31m',     # Red
        LogLevel.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(
        self,
        name: str = "SR",
        level: int = DEFAULT_LOG_LEVEL,
        log_file: Optional[str] = None,
        use_colors: bool = True,
        include_timestamp: bool = True
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            log_file: Optional path; emitted lines are also written there
            use_colors: Use ANSI colors on the console
            include_timestamp: Prefix lines with simulation (or wall) time
        """
        self.name = name
        self.level = level
        self.use_colors = use_colors
        self.include_timestamp = include_timestamp

        self.file: Optional[TextIO] = None
        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            self.file = open(log_file, 'w')

        self.sim_time: Optional[float] = None
        self.message_counts = {level: 0 for level in LogLevel}

    def set_sim_time(self, time: float):
        """Set current simulation time for log messages."""
        self.sim_time = time

    def _format_message(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str],
        colored: bool
    ) -> str:
        """Build one log line."""
        parts = []

        if self.include_timestamp:
            if self.sim_time is not None:
                parts.append(f"[{self.sim_time:12.4f}]")
            else:
                parts.append(f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}]")

        level_str = level.name.ljust(8)
        if colored:
            level_str = f"{self.COLORS[level]}{level_str}{self.RESET}"
        parts.append(level_str)
        parts.append(f"[{self.name}]")
        if category:
            parts.append(f"[{category}]")
        parts.append(message)

        return " ".join(parts)

    def _log(self, level: LogLevel, message: str, category: Optional[str] = None):
        if level < self.level:
            return

        self.message_counts[level] += 1
        print(self._format_message(level, message, category, self.use_colors))

        if self.file:
            self.file.write(self._format_message(level, message, category, False) + '\n')
            self.file.flush()

    def debug(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.WARNING, message, category)

    def error(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.ERROR, message, category)

    # Protocol events
    def packet_sent(self, entity: str, seq_num: int, packet_type: str):
        self.debug(f"{entity}: {packet_type} {seq_num} sent", "TX")

    def packet_received(self, entity: str, seq_num: int, valid: bool):
        status = "OK" if valid else "CORRUPTED"
        self.debug(f"{entity}: packet {seq_num} received, {status}", "RX")

    def ack_sent(self, ack_num: int):
        self.debug(f"ACK {ack_num} sent", "ACK")

    def ack_received(self, ack_num: int):
        self.debug(f"ACK {ack_num} accepted", "ACK")

    def duplicate_ack(self, ack_num: int):
        self.debug(f"Duplicate ACK {ack_num} ignored", "ACK")

    def window_full(self, window_size: int):
        """Application message refused because the send window is full."""
        self.info(f"Window full ({window_size} outstanding), message dropped", "WINDOW")

    def timeout(self, seq_num: int):
        self.warning(f"Timeout for packet {seq_num}", "TIMEOUT")

    def retransmit(self, seq_num: int):
        self.info(f"Retransmitting packet {seq_num}", "RETX")

    def delivered(self, seq_num: int):
        self.debug(f"Packet {seq_num} delivered to application", "DELIVER")

    def window_update(self, first: int, count: int, next_seq: int):
        self.debug(f"Window: first={first}, count={count}, next={next_seq}", "WINDOW")

    def simulation_start(self, params: dict):
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Simulation started: {param_str}", "SIM")

    def simulation_end(self, metrics: dict):
        self.info(
            f"Simulation ended: delivered={metrics.get('messages_delivered', 0)}, "
            f"throughput={metrics.get('throughput', 0):.4f} msg/unit",
            "SIM"
        )

    def get_summary(self) -> dict:
        """Lines emitted so far, per level name."""
        return {
            'message_counts': {level.name: n for level, n in self.message_counts.items()},
            'total_messages': sum(self.message_counts.values())
        }

    def close(self):
        """Close log file if open."""
        if self.file:
            self.file.close()
            self.file = None

    def __del__(self):
        self.close()


# Default instance for entities built without an explicit logger
_global_logger: Optional[SimulationLogger] = None


def get_logger() -> SimulationLogger:
    """Get global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SimulationLogger()
    return _global_logger
