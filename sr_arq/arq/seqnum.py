"""
Sequence Number Arithmetic

Modulo helpers shared by the sender and receiver windows. The sequence
space is always twice the window size, so an offset below the window
size unambiguously means "inside the window".
"""

from dataclasses import dataclass

from ..config import WINDOW_SIZE, calculate_seqspace


@dataclass(frozen=True)
class SequenceSpace:
    """
    Sequence numbers in [0, 2 * window_size).

    Attributes:
        window_size: Window size W the space is derived from
    """
    window_size: int = WINDOW_SIZE

    def __post_init__(self):
        if self.window_size < 1:
            raise ValueError("Window size must be at least 1")

    @property
    def modulus(self) -> int:
        """Size of the sequence space (SEQSPACE)."""
        return calculate_seqspace(self.window_size)

    def next(self, seq_num: int) -> int:
        """Successor of a sequence number, wrapping at the modulus."""
        return (seq_num + 1) % self.modulus

    def offset(self, seq_num: int, base: int) -> int:
        """
        Forward distance from base to seq_num.

        Args:
            seq_num: Sequence number being located
            base: Reference point (e.g. receive base)

        Returns:
            Distance in [0, modulus)
        """
        return (seq_num - base) % self.modulus

    def in_window(self, seq_num: int, base: int) -> bool:
        """Check if seq_num falls in the W numbers starting at base."""
        return self.offset(seq_num, base) < self.window_size
