#!/usr/bin/env python3
"""
Selective Repeat ARQ Emulator - Main Entry Point

This is the main CLI interface for the SR-ARQ emulator.
It provides options for:
- Single emulator runs
- Parameter sweeps over window size and channel quality
- Showing the configuration

Usage:
    python main.py --single --messages 100 --loss 0.2 --corrupt 0.2
    python main.py --sweep --runs 5
    python main.py --config
"""

import argparse
import time

from sr_arq.config import (
    WINDOW_SIZE, RTT, NUM_MESSAGES, MESSAGE_INTERVAL, LOSS_PROB, CORRUPT_PROB,
    WINDOW_SIZES, LOSS_PROBS, CORRUPT_PROBS, RUNS_PER_CONFIGURATION, RESULTS_CSV
)


def run_single_simulation(args):
    """Run a single emulation with specified parameters."""
    from simulation.simulator import Simulator, SimulatorConfig
    from sr_arq.utils.logger import LogLevel

    config = SimulatorConfig(
        num_messages=args.messages,
        message_interval=args.interval,
        loss_prob=args.loss,
        corrupt_prob=args.corrupt,
        window_size=args.window,
        timeout=args.timeout,
        seed=args.seed,
        log_level=LogLevel.DEBUG if args.verbose else LogLevel.WARNING,
        log_file=args.log_file
    )

    print("=" * 60)
    print("SELECTIVE REPEAT ARQ EMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Window size: {config.window_size} (sequence space {2 * config.window_size})")
    print(f"  Timeout: {config.timeout}")
    print(f"  Messages: {config.num_messages}, interval {config.message_interval}")
    print(f"  Loss: {config.loss_prob}, Corruption: {config.corrupt_prob}")
    print(f"  Seed: {config.seed}")

    print("\nRunning simulation...")

    sim = Simulator(config)
    start_time = time.time()
    try:
        results = sim.run()
    finally:
        sim.close()
    elapsed = time.time() - start_time

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    verification = results['verification']
    print(f"\nTransfer Status:")
    print(f"  Complete: {results['complete']}")
    print(f"  Delivery Valid: {verification['valid']} "
          f"({verification['delivered']}/{verification['accepted']} delivered)")
    print(f"  Simulation Time: {results['simulation_time']:.2f}")
    print(f"  Real Time: {elapsed:.2f} s")

    metrics = results['metrics']
    print(f"\nSender (A):")
    print(f"  Messages Offered: {metrics['messages_offered']}")
    print(f"  Rejected (window full): {metrics['window_full_rejections']}")
    print(f"  Original Packets: {metrics['data_packets_sent']}")
    print(f"  Retransmissions: {metrics['retransmissions']}")
    print(f"  ACKs Accepted: {metrics['acks_accepted']}")
    print(f"  Duplicate ACKs: {metrics['duplicate_acks']}")
    print(f"  Corrupted ACKs: {metrics['corrupted_acks']}")

    print(f"\nReceiver (B):")
    print(f"  Packets Received: {metrics['data_packets_received']}")
    print(f"  Duplicates: {metrics['duplicate_packets']}")
    print(f"  Corrupted: {metrics['corrupted_packets']}")
    print(f"  ACKs Sent: {metrics['acks_sent']}")
    print(f"  Messages Delivered: {metrics['messages_delivered']}")

    print(f"\nChannel:")
    print(f"  Lost: {metrics['packets_lost']}")
    print(f"  Corrupted: {metrics['packets_corrupted_in_channel']}")
    print(f"  Throughput: {metrics['throughput']:.4f} msg/unit")

    if args.log_file:
        print(f"\nLog written to: {args.log_file} ({results['log']['total_messages']} lines)")

    return results


def run_parameter_sweep(args):
    """Run parameter sweep."""
    from simulation.runner import BatchRunner

    print("=" * 60)
    print("PARAMETER SWEEP")
    print("=" * 60)

    if args.quick:
        window_sizes = [2, 6]
        loss_probs = [0.0, 0.2]
        corrupt_probs = [0.0, 0.2]
        runs = 2
        num_messages = 100
    else:
        window_sizes = WINDOW_SIZES
        loss_probs = LOSS_PROBS
        corrupt_probs = CORRUPT_PROBS
        runs = args.runs
        num_messages = args.messages

    runner = BatchRunner(
        window_sizes=window_sizes,
        loss_probs=loss_probs,
        corrupt_probs=corrupt_probs,
        runs_per_config=runs,
        num_messages=num_messages,
        output_file=args.output or RESULTS_CSV
    )

    print(f"\nConfiguration:")
    print(f"  Window sizes: {window_sizes}")
    print(f"  Loss probabilities: {loss_probs}")
    print(f"  Corruption probabilities: {corrupt_probs}")
    print(f"  Runs per config: {runs}")
    print(f"  Total simulations: {runner.total_runs}")
    print(f"  Messages per run: {num_messages}")

    print("\nStarting parameter sweep...")
    start = time.time()

    if args.parallel:
        results = runner.run_parallel(max_workers=args.workers)
    else:
        results = runner.run_sequential()

    print(f"Completed {runner.total_runs} simulations in {time.time() - start:.1f}s")

    path = runner.save_results()
    if path:
        print(f"Results saved to: {path}")

    best = runner.get_best_windows()

    print("\n" + "=" * 60)
    print("BEST WINDOW PER CHANNEL CONDITION")
    print("=" * 60)
    if not best.empty:
        print(best.to_string(index=False))

    return results


def show_config(args):
    """Display current configuration."""
    import sr_arq.config as cfg

    print("=" * 60)
    print("EMULATOR CONFIGURATION")
    print("=" * 60)

    print(f"\nProtocol:")
    print(f"  Window Size: {cfg.WINDOW_SIZE}")
    print(f"  Sequence Space: {cfg.SEQSPACE}")
    print(f"  Payload Size: {cfg.PAYLOAD_SIZE} bytes")
    print(f"  Timeout: {cfg.RTT}")

    print(f"\nChannel:")
    print(f"  Delay: {cfg.MIN_CHANNEL_DELAY} + U(0, {cfg.MAX_CHANNEL_JITTER})")
    print(f"  Worst-case idle round trip: {cfg.estimate_round_trip()}")
    print(f"  Loss: {cfg.LOSS_PROB}, Corruption: {cfg.CORRUPT_PROB}")

    print(f"\nParameter Sweep:")
    print(f"  Window Sizes: {cfg.WINDOW_SIZES}")
    print(f"  Loss Probabilities: {cfg.LOSS_PROBS}")
    print(f"  Corruption Probabilities: {cfg.CORRUPT_PROBS}")
    print(f"  Runs per config: {cfg.RUNS_PER_CONFIGURATION}")
    total = (len(cfg.WINDOW_SIZES) * len(cfg.LOSS_PROBS) *
             len(cfg.CORRUPT_PROBS) * cfg.RUNS_PER_CONFIGURATION)
    print(f"  Total simulations: {total}")


def main():
    parser = argparse.ArgumentParser(
        description="Selective Repeat ARQ Emulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single run over a lossy, corrupting channel:
    python main.py --single --messages 200 --loss 0.2 --corrupt 0.2

  Quick parameter sweep (for testing):
    python main.py --sweep --quick

  Parallel parameter sweep:
    python main.py --sweep --parallel --workers 4

  Show configuration:
    python main.py --config
        """
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--single', action='store_true',
                      help='Run single simulation')
    mode.add_argument('--sweep', action='store_true',
                      help='Run parameter sweep')
    mode.add_argument('--config', action='store_true',
                      help='Show configuration')

    # Single simulation options
    parser.add_argument('--window', '-w', type=int, default=WINDOW_SIZE,
                        help=f'Window size (default: {WINDOW_SIZE})')
    parser.add_argument('--timeout', '-t', type=float, default=RTT,
                        help=f'Retransmission timeout (default: {RTT})')
    parser.add_argument('--loss', '-l', type=float, default=LOSS_PROB,
                        help=f'Packet loss probability (default: {LOSS_PROB})')
    parser.add_argument('--corrupt', '-c', type=float, default=CORRUPT_PROB,
                        help=f'Packet corruption probability (default: {CORRUPT_PROB})')
    parser.add_argument('--interval', '-i', type=float, default=MESSAGE_INTERVAL,
                        help=f'Average time between messages (default: {MESSAGE_INTERVAL})')
    parser.add_argument('--seed', '-s', type=int, default=42,
                        help='Random seed (default: 42)')

    # Shared options
    parser.add_argument('--messages', '-m', type=int, default=NUM_MESSAGES,
                        help=f'Messages per run (default: {NUM_MESSAGES})')

    # Parameter sweep options
    parser.add_argument('--runs', '-r', type=int,
                        default=RUNS_PER_CONFIGURATION,
                        help=f'Runs per configuration (default: {RUNS_PER_CONFIGURATION})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')
    parser.add_argument('--quick', action='store_true',
                        help='Quick test with reduced parameters')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output CSV path for sweeps')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Trace every protocol event')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Also write the single-run log to this file')

    args = parser.parse_args()

    if args.single:
        run_single_simulation(args)
    elif args.sweep:
        run_parameter_sweep(args)
    elif args.config:
        show_config(args)


if __name__ == "__main__":
    main()
