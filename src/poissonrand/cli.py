import argparse
import math
import sys
import time
from typing import List, Optional

import numpy as np

from .engines import ENGINES
from .generator import PoissonGenerator

"""
poissonrand CLI - Poisson generation throughput benchmark
"""

DEFAULT_SIZE = 1024 * 1024 * 16
WARMUP_RUNS = 5

def run_benchmark(generator: PoissonGenerator, lam: float, size: int, trials: int) -> np.ndarray:
	"""Time ``trials`` bulk generations after a warm-up, print one result line"""
	# Warm-up (first call triggers JIT compilation)
	for _ in range(WARMUP_RUNS):
		samples = generator.generate(size, lam)

	start = time.time()
	for _ in range(trials):
		samples = generator.generate(size, lam)
	elapsed_ms = (time.time() - start) * 1e3

	seconds = elapsed_ms / 1e3
	gib = float(1 << 30)
	total = trials * size
	print(
		f"      Throughput = {total * samples.itemsize / (seconds * gib):8.3f} GB/s, "
		f"Samples = {total / (seconds * gib):8.3f} GSample/s, "
		f"AvgTime (1 trial) = {elapsed_ms / trials:8.3f} ms, "
		f"Time (all) = {elapsed_ms:8.3f} ms, "
		f"Size = {size}"
	)
	print(f"      Mean = {samples.mean():.3f}, Variance = {samples.var():.3f}")
	return samples

def select_engines(requested: List[str]) -> List[str]:
	"""Expand 'all' and keep registry order"""
	if 'all' in requested:
		return list(ENGINES)
	return [name for name in ENGINES if name in requested]

def main(argv: Optional[List[str]] = None) -> int:
	"""Main CLI entry point for the benchmark"""
	parser = argparse.ArgumentParser(
		description='Benchmark bulk Poisson generation',
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  # Default engine (pcg32), lambda 100
  poissonrand-bench

  # Every engine, several lambdas spanning all regimes
  poissonrand-bench --engine all --lambda 1 500 2000 10000

  # Force CPU with fewer samples
  poissonrand-bench --device cpu --size 1000000 --trials 5

Engines:
  pcg32       standard policy (Knuth / Atkinson / normal)
  splitmix64  chunked policy (chunked inversion / normal)
        """
	)

	parser.add_argument('--engine', type=str, nargs='+', default=['pcg32'],
						choices=list(ENGINES) + ['all'],
						help='Engines to benchmark, or "all" (default: pcg32)')
	parser.add_argument('--lambda', dest='lambdas', type=float, nargs='+', default=[100.0],
						help='Poisson rates to benchmark (default: 100.0)')
	parser.add_argument('--size', type=int, default=DEFAULT_SIZE,
						help=f'Number of values per trial (default: {DEFAULT_SIZE})')
	parser.add_argument('--trials', type=int, default=20, help='Number of timed trials (default: 20)')
	parser.add_argument('--device', type=str, choices=['auto', 'cpu', 'gpu'], default='auto',
						help='Device to use: auto (GPU if available), cpu, gpu (default: auto)')
	parser.add_argument('--n-states', type=int, default=1024, help='Number of state rows (default: 1024)')
	parser.add_argument('--seed', type=int, default=2016, help='Random seed (default: 2016)')

	args = parser.parse_args(argv)

	# Validate inputs
	if args.size < 1:
		print(f"Error: --size must be positive, got {args.size}", file=sys.stderr)
		return 1
	if args.trials < 1:
		print(f"Error: --trials must be positive, got {args.trials}", file=sys.stderr)
		return 1
	for lam in args.lambdas:
		if not math.isfinite(lam) or lam <= 0.0:
			print(f"Error: --lambda values must be positive finite numbers, got {lam}", file=sys.stderr)
			return 1

	device_label = None
	for engine in select_engines(args.engine):
		try:
			generator = PoissonGenerator(
				engine=engine,
				n_states=args.n_states,
				seed=args.seed,
				device=args.device
			)
		except (ValueError, RuntimeError) as e:
			print(f"Error: {e}", file=sys.stderr)
			return 1

		if device_label is None:
			device_label = generator.device.upper()
			print(f"poissonrand ({device_label}):\n")

		print(f"{engine} ({generator.policy.value} policy):")
		print("  poisson:")
		for lam in args.lambdas:
			print(f"    lambda {lam:.1f}")
			run_benchmark(generator, lam, args.size, args.trials)
		print()

	return 0

if __name__ == '__main__':
	sys.exit(main())
