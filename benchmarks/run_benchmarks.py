#!/usr/bin/env python3
"""Benchmark suite for Blossom filters: latency and observed false-positive rate."""

import argparse
import json
import os
import time
from pathlib import Path
from typing import Callable, Dict, List

import numpy as np
import plotly.graph_objects as go
from tqdm import tqdm

from blossom import AttenuatedBloomFilter, BloomFilter, SafeBloomFilter, ScalingBloomFilter

class Metrics:
    def __init__(self, name: str, target_error: float):
        self.name = name
        self.target_error = target_error
        self.add_latencies: List[float] = []
        self.has_latencies: List[float] = []
        self.false_positives = 0
        self.probes = 0

    def to_dict(self) -> Dict:
        return {
            "add_latencies_us": {
                "p50": np.percentile(self.add_latencies, 50),
                "p95": np.percentile(self.add_latencies, 95),
                "p99": np.percentile(self.add_latencies, 99),
            },
            "has_latencies_us": {
                "p50": np.percentile(self.has_latencies, 50),
                "p95": np.percentile(self.has_latencies, 95),
                "p99": np.percentile(self.has_latencies, 99),
            },
            "target_error": self.target_error,
            "observed_error": self.false_positives / self.probes if self.probes else 0.0,
        }

def plot_latencies(results: List[Metrics], output_path: Path):
    fig = go.Figure()

    for m in results:
        fig.add_trace(go.Box(
            y=m.add_latencies,
            name=f"{m.name} add",
            boxpoints="outliers"
        ))
        fig.add_trace(go.Box(
            y=m.has_latencies,
            name=f"{m.name} has",
            boxpoints="outliers"
        ))

    fig.update_layout(
        title="Blossom Latency Distribution",
        yaxis_title="Latency (µs)",
        boxmode="group"
    )

    fig.write_html(output_path)

class BenchmarkSuite:
    def __init__(self, num_entries: int, key_size: int, error_rate: float):
        self.num_entries = num_entries
        self.error_rate = error_rate
        self._keys = [os.urandom(key_size) for _ in range(num_entries)]
        # Probes never collide with inserted keys: they are one byte longer.
        self._probes = [os.urandom(key_size + 1) for _ in range(num_entries)]

    def run(self, name: str, add: Callable[[bytes], object], has: Callable[[bytes], bool]) -> Metrics:
        metrics = Metrics(name, self.error_rate)

        for key in tqdm(self._keys, desc=f"{name} add"):
            start = time.perf_counter()
            add(key)
            metrics.add_latencies.append((time.perf_counter() - start) * 1e6)

        for key in tqdm(self._keys, desc=f"{name} has"):
            start = time.perf_counter()
            assert has(key), "false negative"
            metrics.has_latencies.append((time.perf_counter() - start) * 1e6)

        for key in tqdm(self._probes, desc=f"{name} probe"):
            metrics.probes += 1
            metrics.false_positives += has(key)

        return metrics

    def run_all(self) -> List[Metrics]:
        bloom = BloomFilter.from_capacity(self.num_entries, self.error_rate)
        safe = SafeBloomFilter(self.num_entries, self.error_rate)
        scaling = ScalingBloomFilter(self.error_rate, initial_capacity=max(1, self.num_entries // 16))
        attenuated = AttenuatedBloomFilter(bitfield_size=bloom.size)
        return [
            self.run("bloom", bloom.add, bloom.has),
            self.run("safe", safe.add, safe.has),
            self.run("scaling", scaling.add, scaling.has),
            self.run("attenuated[0]", attenuated[0].add, attenuated[0].has),
        ]

def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--size", type=int, default=100000, help="Number of keys")
    parser.add_argument("--key-size", type=int, default=16, help="Size of keys in bytes")
    parser.add_argument("--error-rate", type=float, default=0.01, help="Target false-positive rate")
    parser.add_argument("--output", type=Path, default=Path("benchmark_results"), help="Output directory")
    args = parser.parse_args()

    args.output.mkdir(parents=True, exist_ok=True)

    suite = BenchmarkSuite(args.size, args.key_size, args.error_rate)
    results = suite.run_all()

    plot_latencies(results, args.output / "latencies.html")

    with open(args.output / "metrics.json", "w") as f:
        json.dump({m.name: m.to_dict() for m in results}, f, indent=2)

if __name__ == "__main__":
    main()
