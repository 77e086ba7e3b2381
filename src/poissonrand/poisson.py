import functools
import math
import warnings
from typing import Callable, NamedTuple

from numba import njit

from poissonrand.engines import Engine, build_draws, get_engine
from poissonrand.policy import (
	CHUNK_SIZE,
	LAMBDA_THRESHOLD_CHUNKED_HUGE,
	LAMBDA_THRESHOLD_HUGE,
	LAMBDA_THRESHOLD_SMALL,
	DispatchPolicy,
)

"""
Poisson sampling kernels.

Every sampler is written once as a closure over the engine's draw primitives
and compiled with the backend decorator, so the CPU and GPU paths share the
same numerics. Kernels take a per-thread state row (1-D uint64 array) that is
advanced in place.
"""

EXP_NEG_CHUNK = math.exp(-CHUNK_SIZE)

# Bulk output is uint32
UINT32_MAX = 4294967295.0


def _log_factorial(n):
	if n <= 1:
		return 0.0
	return math.lgamma(n + 1.0)


class PoissonKernels(NamedTuple):
	"""Compiled kernels for one engine on one backend"""
	engine: Engine
	device: str
	draw_uniform: Callable
	draw_normal: Callable
	log_factorial: Callable
	poisson_small: Callable
	poisson_large: Callable
	poisson_huge: Callable
	poisson_chunked: Callable
	dispatch_standard: Callable
	dispatch_chunked: Callable
	sample_poisson: Callable
	sample_poisson4: Callable


def build_poisson_kernels(jit, draw_uniform, draw_normal, policy: DispatchPolicy):
	"""
	Compile the samplers and dispatchers on top of a pair of draw primitives.

	Returns a dict of compiled functions. ``sample_poisson`` is bound to the
	dispatcher matching ``policy``; the choice is made here, once, and never
	re-examined per call.
	"""
	log_factorial = jit(_log_factorial)

	@jit
	def poisson_small(state, lam):
		"""Knuth's multiplication method, exact while exp(-lam) is representable"""
		limit = math.exp(-lam)
		k = 0
		product = 1.0
		while True:
			k += 1
			product *= draw_uniform(state)
			if product <= limit:
				return k - 1

	@jit
	def poisson_large(state, lam):
		"""Rejection method PA (A. C. Atkinson, 1979)"""
		c = 0.767 - 3.36 / lam
		beta = math.pi / math.sqrt(3.0 * lam)
		alpha = beta * lam
		k = math.log(c) - lam - math.log(beta)
		log_lam = math.log(lam)

		# No iteration cap: expected number of rounds is bounded, worst case is not
		while True:
			u = draw_uniform(state)
			if u == 0.0:
				# x would be -inf, rejected like any other negative candidate
				continue
			x = (alpha - math.log((1.0 - u) / u)) / beta
			n = math.floor(x + 0.5)
			if n < 0:
				continue
			v = draw_uniform(state)
			y = alpha - beta * x
			t = 1.0 + math.exp(y)
			lhs = y + math.log(v / (t * t))
			rhs = k + n * log_lam - log_factorial(n)
			if lhs <= rhs:
				return n

	@jit
	def poisson_huge(state, lam):
		"""Normal approximation N(lam, lam), rounded half away from zero"""
		z = draw_normal(state)
		# Clamped at 0 rather than wrapping when the unsigned result would be negative
		return max(0, math.floor(math.sqrt(lam) * z + lam + 0.5))

	@jit
	def poisson_chunked(state, lam):
		"""
		Inversion with the exp(-lam) factor applied in chunks of CHUNK_SIZE.

		x holds the current pmf term and y the running cdf, both scaled by the
		survival factors folded in so far. Intermediate scaling overestimates
		the cdf, so k only ever moves forward; the last chunk makes y exact.
		"""
		u = draw_uniform(state)
		x = 1.0
		y = 1.0
		k = 0
		boundary = 0.0
		while True:
			if lam > boundary + CHUNK_SIZE:
				survival = EXP_NEG_CHUNK
			else:
				survival = math.exp(boundary - lam)
			x *= survival
			y *= survival
			boundary += CHUNK_SIZE

			# x reaching zero means the remaining tail is below double resolution
			while u > y and x > 0.0:
				k += 1
				x *= lam / k
				y += x

			if boundary >= lam:
				return k

	@jit
	def dispatch_standard(state, lam):
		if lam < LAMBDA_THRESHOLD_SMALL:
			return poisson_small(state, lam)
		elif lam <= LAMBDA_THRESHOLD_HUGE:
			return poisson_large(state, lam)
		return poisson_huge(state, lam)

	@jit
	def dispatch_chunked(state, lam):
		if lam < LAMBDA_THRESHOLD_CHUNKED_HUGE:
			return poisson_chunked(state, lam)
		return poisson_huge(state, lam)

	if policy is DispatchPolicy.CHUNKED:
		sample_poisson = dispatch_chunked
	else:
		sample_poisson = dispatch_standard

	@jit
	def sample_poisson4(state, lam):
		"""Four sequential draws from the same state"""
		a = sample_poisson(state, lam)
		b = sample_poisson(state, lam)
		c = sample_poisson(state, lam)
		d = sample_poisson(state, lam)
		return a, b, c, d

	return dict(
		log_factorial=log_factorial,
		poisson_small=poisson_small,
		poisson_large=poisson_large,
		poisson_huge=poisson_huge,
		poisson_chunked=poisson_chunked,
		dispatch_standard=dispatch_standard,
		dispatch_chunked=dispatch_chunked,
		sample_poisson=sample_poisson,
		sample_poisson4=sample_poisson4,
	)


def _backend_jit(device: str):
	if device == 'cpu':
		return njit(error_model='numpy')
	elif device == 'gpu':
		from numba import cuda
		return cuda.jit(device=True)
	raise ValueError(f"Invalid device: {device}. Must be 'cpu' or 'gpu'")


def compile_kernels(engine, device: str = 'cpu') -> PoissonKernels:
	"""
	Build (and cache) the Poisson kernels for an engine on a backend.

	Parameters
	----------
	engine : Engine or str
		Engine descriptor or registry name.
	device : str, default='cpu'
		'cpu' for numba.njit functions callable from Python and other njit
		code, 'gpu' for CUDA device functions.

	Returns
	-------
	PoissonKernels
	"""
	return _compile_kernels(get_engine(engine), device)


@functools.lru_cache(maxsize=None)
def _compile_kernels(engine: Engine, device: str) -> PoissonKernels:
	jit = _backend_jit(device)
	draw_uniform, draw_normal = build_draws(jit, engine.next_uint32)
	kernels = build_poisson_kernels(jit, draw_uniform, draw_normal, engine.policy)
	return PoissonKernels(
		engine=engine,
		device=device,
		draw_uniform=draw_uniform,
		draw_normal=draw_normal,
		**kernels
	)


def check_lambda(lam) -> float:
	"""Validate a Poisson rate on the host side; kernels assume it is valid"""
	lam = float(lam)
	if not math.isfinite(lam) or lam <= 0.0:
		raise ValueError(f"lambda must be a positive finite number, got {lam}")
	if lam + 10.0 * math.sqrt(lam) > UINT32_MAX:
		warnings.warn(f"lambda={lam} is close to the uint32 limit, samples may wrap around")
	return lam
