import math
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

import numpy as np

from poissonrand.policy import DispatchPolicy

"""
Random engines and the uniform/normal draw primitives built on top of them.

An engine is described by the pure-Python source of its 32-bit transition
function. The source is compiled separately for each backend (numba CPU or
numba CUDA device function), so the same engine runs on both.
"""

MASK32 = np.uint64(0xFFFFFFFF)

PCG_MULTIPLIER = np.uint64(6364136223846793005)
PCG_INCREMENT = np.uint64(1442695040888963407)

SPLITMIX_GAMMA = np.uint64(0x9E3779B97F4A7C15)
SPLITMIX_MIX1 = np.uint64(0xBF58476D1CE4E5B9)
SPLITMIX_MIX2 = np.uint64(0x94D049BB133111EB)

# 2**-53
INV_2_53 = 1.0 / 9007199254740992.0


def pcg32_next(state):
	"""PCG-XSH-RR: advance the 64-bit LCG in state[0], return a 32-bit word"""
	oldstate = state[0]
	state[0] = oldstate * PCG_MULTIPLIER + PCG_INCREMENT
	xorshifted = (((oldstate >> np.uint64(18)) ^ oldstate) >> np.uint64(27)) & MASK32
	rot = oldstate >> np.uint64(59)
	return ((xorshifted >> rot) | (xorshifted << ((np.uint64(32) - rot) & np.uint64(31)))) & MASK32


def splitmix64_next(state):
	"""SplitMix64: Weyl step on state[0], return the high 32 bits of the mix"""
	state[0] += SPLITMIX_GAMMA
	z = state[0]
	z = (z ^ (z >> np.uint64(30))) * SPLITMIX_MIX1
	z = (z ^ (z >> np.uint64(27))) * SPLITMIX_MIX2
	z = z ^ (z >> np.uint64(31))
	return z >> np.uint64(32)


@dataclass(frozen=True)
class Engine:
	"""
	Description of a generator variant.

	Parameters
	----------
	name : str
		Registry name of the engine.
	state_words : int
		Number of uint64 words in one per-thread state row.
	next_uint32 : callable
		Plain-Python transition ``f(state) -> uint64`` returning a value in
		[0, 2**32). Must be compilable by numba in nopython mode.
	policy : DispatchPolicy
		Which Poisson dispatch policy kernels built for this engine use.
	"""
	name: str
	state_words: int
	next_uint32: Callable
	policy: DispatchPolicy = DispatchPolicy.STANDARD


PCG32 = Engine(name='pcg32', state_words=1, next_uint32=pcg32_next, policy=DispatchPolicy.STANDARD)
SPLITMIX64 = Engine(name='splitmix64', state_words=1, next_uint32=splitmix64_next, policy=DispatchPolicy.CHUNKED)

ENGINES: Dict[str, Engine] = {
	PCG32.name: PCG32,
	SPLITMIX64.name: SPLITMIX64,
}


def get_engine(engine) -> Engine:
	"""Resolve an engine name (or pass an Engine through)"""
	if isinstance(engine, Engine):
		return engine
	if engine not in ENGINES:
		raise ValueError(f"Unknown engine: {engine}. Must be one of {sorted(ENGINES)}")
	return ENGINES[engine]


def build_draws(jit, next_uint32) -> Tuple[Callable, Callable]:
	"""
	Compile the uniform and normal draw primitives for one engine.

	``jit`` is the backend decorator, e.g. ``numba.njit`` or
	``numba.cuda.jit(device=True)``.
	"""
	next_word = jit(next_uint32)

	@jit
	def draw_uniform(state):
		"""Uniform double in [0, 1) with 53 random bits"""
		a = next_word(state) >> np.uint64(5)
		b = next_word(state) >> np.uint64(6)
		return (a * 67108864.0 + b) * INV_2_53

	@jit
	def draw_normal(state):
		"""Standard normal variable using Box-Muller"""
		u1 = draw_uniform(state)
		u2 = draw_uniform(state)
		# 1 - u1 lies in (0, 1], keeps log finite
		r = math.sqrt(-2.0 * math.log(1.0 - u1))
		theta = 2.0 * math.pi * u2
		return r * math.cos(theta)

	return draw_uniform, draw_normal


def seed_states(engine: Engine, seed: int, n_states: int) -> np.ndarray:
	"""
	Build a (n_states, state_words) uint64 block of per-thread states.

	Every word is a SplitMix64 hash of (seed, row, word), so rows are
	decorrelated and the block depends only on seed and shape.
	"""
	if n_states < 1:
		raise ValueError("n_states must be at least 1")

	rows = np.arange(n_states, dtype=np.uint64)[:, None]
	words = np.arange(engine.state_words, dtype=np.uint64)[None, :]
	counter = rows * np.uint64(engine.state_words) + words + np.uint64(1)

	z = np.uint64(seed & 0xFFFFFFFFFFFFFFFF) + counter * SPLITMIX_GAMMA
	z = (z ^ (z >> np.uint64(30))) * SPLITMIX_MIX1
	z = (z ^ (z >> np.uint64(27))) * SPLITMIX_MIX2
	z = z ^ (z >> np.uint64(31))
	return np.ascontiguousarray(z, dtype=np.uint64)
