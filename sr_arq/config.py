"""
Configuration file for the Selective Repeat ARQ protocol and its emulator.
Contains the fixed protocol constants and the emulator/sweep defaults.
"""

import os

# =============================================================================
# PROTOCOL PARAMETERS
# =============================================================================

# Sender and receiver window size (packets)
WINDOW_SIZE = 6

# Sequence number space. Must be 2 * WINDOW_SIZE so that a wrapped sequence
# number is never confused with one still inside the window.
SEQSPACE = 2 * WINDOW_SIZE

# acknum value carried by data packets
NOTINUSE = -1

# Fixed packet payload size (bytes)
PAYLOAD_SIZE = 20

# Retransmission timeout (emulator time units)
RTT = 16.0

# =============================================================================
# EMULATOR PARAMETERS
# =============================================================================

# Number of application messages generated per run
NUM_MESSAGES = 1000

# Per-packet loss and corruption probabilities
LOSS_PROB = 0.0
CORRUPT_PROB = 0.0

# Average time between messages arriving from the sending application
MESSAGE_INTERVAL = 10.0

# One-way delay = MIN_CHANNEL_DELAY + MAX_CHANNEL_JITTER * U(0, 1)
MIN_CHANNEL_DELAY = 1.0
MAX_CHANNEL_JITTER = 9.0

# Probabilities of the field hit by a corruption (remainder tampers the checksum)
CORRUPT_PAYLOAD_SHARE = 0.70
CORRUPT_SEQNUM_SHARE = 0.10
CORRUPT_ACKNUM_SHARE = 0.10

# Simulation time limit - failsafe
MAX_SIMULATION_TIME = 1_000_000.0

# =============================================================================
# PARAMETER SWEEP CONFIGURATION
# =============================================================================

WINDOW_SIZES = [2, 4, 6, 8]
LOSS_PROBS = [0.0, 0.1, 0.2, 0.3]
CORRUPT_PROBS = [0.0, 0.1, 0.2, 0.3]

# Number of simulation runs per (W, loss, corrupt) triple
RUNS_PER_CONFIGURATION = 5

# Default RNG seed base (actual seed = base + offsets per run)
RNG_SEED_BASE = 42

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_INFO

# =============================================================================
# OUTPUT PATHS
# =============================================================================

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
OUTPUT_DIR = os.path.join(BASE_DIR, "data", "output")
RESULTS_CSV = os.path.join(OUTPUT_DIR, "results.csv")

# =============================================================================
# DERIVED PARAMETERS
# =============================================================================

def calculate_seqspace(window_size):
    """Sequence space required for a given window size."""
    return 2 * window_size

def estimate_round_trip():
    """
    Worst-case round trip through an idle emulator channel.
    RTT_max = 2 * (MIN_CHANNEL_DELAY + MAX_CHANNEL_JITTER)
    """
    return 2 * (MIN_CHANNEL_DELAY + MAX_CHANNEL_JITTER)


if __name__ == "__main__":
    print("=" * 60)
    print("SELECTIVE REPEAT ARQ - CONFIGURATION")
    print("=" * 60)
    print(f"\nProtocol:")
    print(f"  Window Size: {WINDOW_SIZE}")
    print(f"  Sequence Space: {SEQSPACE}")
    print(f"  Payload Size: {PAYLOAD_SIZE} bytes")
    print(f"  Timeout: {RTT}")
    print(f"  Worst-case idle round trip: {estimate_round_trip()}")

    print(f"\nEmulator:")
    print(f"  Messages: {NUM_MESSAGES}")
    print(f"  Loss: {LOSS_PROB}, Corruption: {CORRUPT_PROB}")
    print(f"  Message Interval: {MESSAGE_INTERVAL}")

    print(f"\nParameter Sweep:")
    print(f"  Window Sizes: {WINDOW_SIZES}")
    print(f"  Loss Probabilities: {LOSS_PROBS}")
    print(f"  Corruption Probabilities: {CORRUPT_PROBS}")
    print(f"  Runs per config: {RUNS_PER_CONFIGURATION}")
