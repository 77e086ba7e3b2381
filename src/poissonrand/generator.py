import numpy

"""
Poisson Generator - Public API

Facade that selects appropriate backend (CPU or GPU) based on device parameter.
"""

class PoissonGenerator:
	"""
	Bulk Poisson sampler over a block of per-thread generator states.

	Each state row behaves like one GPU thread: it draws the samples for a
	fixed, strided set of output positions, one single-sample call at a time.
	Automatically selects CPU or GPU backend based on device parameter and availability.

	Parameters
	----------
	engine : str or Engine, default='pcg32'
		Random engine. Its dispatch policy decides which Poisson methods apply:
		'pcg32' uses the standard policy, 'splitmix64' the chunked one.

	n_states : int, default=1024
		Number of independent state rows (logical threads).

	seed : int, default=2016
		Seed for the state block.

	device : str, default='auto'
		Computing device to use: 'cpu', 'gpu', or 'auto'.
		'cpu' - Use numba parallel CPU loops (always available)
		'gpu' - Use CUDA (raises error if unavailable)
		'auto' - Use GPU if available, otherwise fall back to CPU

	Examples
	--------
	>>> generator = PoissonGenerator(engine='pcg32', device='cpu')
	>>> samples = generator.generate(100000, lam=500.0)
	>>> samples.dtype
	dtype('uint32')
	"""

	def __init__(
		self,
		engine='pcg32',
		n_states: int = 1024,
		seed: int = 2016,
		device: str = 'auto'
	):
		# Validate device parameter
		if device not in ['auto', 'cpu', 'gpu']:
			raise ValueError(f"Invalid device: {device}. Must be 'auto', 'cpu', or 'gpu'")

		self._impl = self._create_backend(
			device=device,
			engine=engine,
			n_states=n_states,
			seed=seed
		)

	def _create_backend(self, device: str, **params):
		"""Create appropriate backend based on device parameter"""
		if device == 'cpu':
			from poissonrand.generator_cpu import PoissonGeneratorCPU
			self._device = 'cpu'
			return PoissonGeneratorCPU(**params)

		try:
			from numba import cuda
		except ImportError:
			if device == 'gpu':
				raise RuntimeError(
					"GPU device requested but numba-cuda is not installed. "
					"Install with: pip install poissonrand[gpu]"
				)
			cuda = None

		if cuda is None or not cuda.is_available():
			if device == 'gpu':
				raise RuntimeError(
					"GPU device requested but CUDA is not available. "
					"Ensure you have an NVIDIA GPU, CUDA toolkit installed, "
					"and numba with CUDA support (pip install poissonrand[gpu])"
				)
			# Fall back to CPU for 'auto' mode
			from poissonrand.generator_cpu import PoissonGeneratorCPU
			self._device = 'cpu'
			return PoissonGeneratorCPU(**params)

		from poissonrand.generator_gpu import PoissonGeneratorGPU
		self._device = 'gpu'
		return PoissonGeneratorGPU(**params)

	@property
	def device(self) -> str:
		"""Return the actual device being used ('cpu' or 'gpu')"""
		return self._device

	@property
	def engine(self):
		return self._impl.engine

	@property
	def policy(self):
		"""Dispatch policy of the engine backing this generator"""
		return self._impl.policy

	@property
	def n_states(self) -> int:
		return self._impl.n_states

	@property
	def states(self) -> numpy.ndarray:
		"""Current per-thread state block (a host array)"""
		return self._impl.states

	def generate(self, size: int, lam: float) -> numpy.ndarray:
		"""
		Draw Poisson samples.

		Parameters
		----------
		size : int
			Number of samples.
		lam : float
			Poisson rate, must be finite and positive.

		Returns
		-------
		np.ndarray
			uint32 array of shape (size,)
		"""
		return self._impl.generate(size, lam)


def generate_poisson(
	size: int,
	lam: float,
	engine='pcg32',
	seed: int = 2016,
	**kwargs
) -> numpy.ndarray:
	"""
	Quick function to draw Poisson samples with default settings.

	This is a convenience wrapper around PoissonGenerator for one-off usage.

	Examples
	--------
	>>> samples = generate_poisson(1000, lam=4.5, device='cpu')
	"""
	generator = PoissonGenerator(engine=engine, seed=seed, **kwargs)
	return generator.generate(size, lam)
