"""
Batch Runner for Parameter Sweep Simulations

This module runs the emulator over every combination of window size,
loss probability and corruption probability, several times each, and
summarizes the results.
"""

import os
import csv
import time
from typing import Optional, Callable, List, Dict
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing

import pandas as pd
from tqdm import tqdm

from sr_arq.config import (
    WINDOW_SIZES, LOSS_PROBS, CORRUPT_PROBS, RUNS_PER_CONFIGURATION,
    RNG_SEED_BASE, RESULTS_CSV, NUM_MESSAGES
)
from simulation.simulator import Simulator, SimulatorConfig
from sr_arq.utils.logger import LogLevel


GROUP_COLUMNS = ['window_size', 'loss_prob', 'corrupt_prob']


@dataclass
class RunConfig:
    """Configuration for a single simulation run."""
    window_size: int
    loss_prob: float
    corrupt_prob: float
    run_id: int
    seed: int
    num_messages: int


def run_single_simulation(run_config: RunConfig) -> Dict:
    """
    Run a single simulation with given configuration.

    This function is designed to be called in a separate process.

    Args:
        run_config: Configuration for this run

    Returns:
        Dictionary with results
    """
    row = {
        'window_size': run_config.window_size,
        'loss_prob': run_config.loss_prob,
        'corrupt_prob': run_config.corrupt_prob,
        'run_id': run_config.run_id,
        'seed': run_config.seed,
    }

    try:
        config = SimulatorConfig(
            window_size=run_config.window_size,
            loss_prob=run_config.loss_prob,
            corrupt_prob=run_config.corrupt_prob,
            num_messages=run_config.num_messages,
            seed=run_config.seed,
            log_level=LogLevel.ERROR  # Minimal logging for batch runs
        )

        sim = Simulator(config)
        results = sim.run()
        metrics = results['metrics']

        row.update({
            'throughput': metrics['throughput'],
            'delivery_ratio': metrics['delivery_ratio'],
            'messages_accepted': metrics['messages_accepted'],
            'messages_delivered': metrics['messages_delivered'],
            'window_full_rejections': metrics['window_full_rejections'],
            'retransmissions': metrics['retransmissions'],
            'retransmission_rate': metrics['retransmission_rate'],
            'duplicate_acks': metrics['duplicate_acks'],
            'duplicate_packets': metrics['duplicate_packets'],
            'corrupted_packets': metrics['corrupted_packets'],
            'corrupted_acks': metrics['corrupted_acks'],
            'total_time': results['simulation_time'],
            'data_valid': results['verification']['valid'],
            'complete': results['complete'],
            'error': None
        })

    except Exception as e:
        row.update({'throughput': 0.0, 'error': str(e)})

    return row


class BatchRunner:
    """
    Batch Runner for parameter sweep simulations.

    Executes all (W, loss, corrupt) combinations with multiple runs each.

    Attributes:
        window_sizes: Window sizes to test
        loss_probs: Loss probabilities to test
        corrupt_probs: Corruption probabilities to test
        runs_per_config: Number of runs per configuration
        num_messages: Messages generated per run
    """

    def __init__(
        self,
        window_sizes: List[int] = None,
        loss_probs: List[float] = None,
        corrupt_probs: List[float] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION,
        num_messages: int = NUM_MESSAGES,
        output_file: str = RESULTS_CSV,
        on_progress: Optional[Callable[[int, int, dict], None]] = None,
        show_progress: bool = True
    ):
        """
        Initialize batch runner.

        Args:
            window_sizes: Window sizes (default from config)
            loss_probs: Loss probabilities (default from config)
            corrupt_probs: Corruption probabilities (default from config)
            runs_per_config: Number of runs per configuration
            num_messages: Messages generated per run
            output_file: Path to output CSV file
            on_progress: Callback for progress updates
            show_progress: Display a tqdm progress bar
        """
        self.window_sizes = window_sizes if window_sizes is not None else WINDOW_SIZES
        self.loss_probs = loss_probs if loss_probs is not None else LOSS_PROBS
        self.corrupt_probs = corrupt_probs if corrupt_probs is not None else CORRUPT_PROBS
        self.runs_per_config = runs_per_config
        self.num_messages = num_messages
        self.output_file = output_file
        self.on_progress = on_progress
        self.show_progress = show_progress

        self.results: List[Dict] = []

        self.total_runs = (len(self.window_sizes) *
                           len(self.loss_probs) *
                           len(self.corrupt_probs) *
                           self.runs_per_config)
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_run_configs(self) -> List[RunConfig]:
        """Generate all run configurations."""
        configs = []

        for window_size in self.window_sizes:
            for loss_prob in self.loss_probs:
                for corrupt_prob in self.corrupt_probs:
                    for run_id in range(self.runs_per_config):
                        # Unique seed for each run
                        seed = (RNG_SEED_BASE +
                                window_size * 1000 +
                                round(loss_prob * 100) * 10 +
                                round(corrupt_prob * 100) +
                                run_id * 100000)

                        configs.append(RunConfig(
                            window_size=window_size,
                            loss_prob=loss_prob,
                            corrupt_prob=corrupt_prob,
                            run_id=run_id,
                            seed=seed,
                            num_messages=self.num_messages
                        ))

        return configs

    def _record(self, result: Dict):
        """Store one result and report progress."""
        self.results.append(result)
        self.completed_runs += 1

        if self.on_progress:
            self.on_progress(self.completed_runs, self.total_runs, result)

    def run_sequential(self) -> List[Dict]:
        """
        Run all simulations sequentially.

        Returns:
            List of result dictionaries
        """
        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        iterator = tqdm(configs, desc="Simulations", disable=not self.show_progress)

        for config in iterator:
            self._record(run_single_simulation(config))

        return self.results

    def run_parallel(self, max_workers: Optional[int] = None) -> List[Dict]:
        """
        Run simulations in parallel using multiprocessing.

        Args:
            max_workers: Number of parallel workers (default: CPU count)

        Returns:
            List of result dictionaries
        """
        if max_workers is None:
            max_workers = multiprocessing.cpu_count()

        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(run_single_simulation, config)
                       for config in configs]
            iterator = tqdm(as_completed(futures), total=len(futures),
                            desc="Simulations", disable=not self.show_progress)

            for future in iterator:
                self._record(future.result())

        return self.results

    def save_results(self, filepath: Optional[str] = None) -> Optional[str]:
        """
        Save results to CSV file.

        Args:
            filepath: Output file path (default: self.output_file)

        Returns:
            Path written, or None if there was nothing to save
        """
        filepath = filepath or self.output_file

        if not self.results:
            return None

        out_dir = os.path.dirname(filepath)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)

        # Failed runs carry fewer columns
        fieldnames = []
        for result in self.results:
            for key in result:
                if key not in fieldnames:
                    fieldnames.append(key)

        with open(filepath, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(self.results)

        return filepath

    def get_aggregated_results(self) -> pd.DataFrame:
        """
        Get results aggregated by (W, loss, corrupt).

        Returns:
            DataFrame with one row per configuration
        """
        df = pd.DataFrame(self.results)
        if df.empty:
            return df

        if 'error' in df.columns:
            df = df[df['error'].isna()]
        if df.empty:
            # Every run failed
            return pd.DataFrame()

        return df.groupby(GROUP_COLUMNS).agg(
            runs=('run_id', 'count'),
            throughput_mean=('throughput', 'mean'),
            throughput_std=('throughput', 'std'),
            retransmissions_mean=('retransmissions', 'mean'),
            delivery_ratio_mean=('delivery_ratio', 'mean'),
            rejections_mean=('window_full_rejections', 'mean'),
            all_valid=('data_valid', 'all')
        ).reset_index()

    def get_best_windows(self) -> pd.DataFrame:
        """
        Find the window size with the highest mean throughput per channel condition.

        Returns:
            DataFrame with one row per (loss, corrupt) pair
        """
        aggregated = self.get_aggregated_results()
        if aggregated.empty:
            return aggregated

        best = aggregated.loc[
            aggregated.groupby(['loss_prob', 'corrupt_prob'])['throughput_mean'].idxmax()
        ]
        return best.reset_index(drop=True)
