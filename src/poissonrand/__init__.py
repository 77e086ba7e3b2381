from .engines import ENGINES, Engine, get_engine, seed_states
from .generator import PoissonGenerator, generate_poisson
from .policy import DispatchPolicy
from .poisson import PoissonKernels, compile_kernels

"""
poissonrand - Poisson sampling kernels for parallel random number generation

Per-thread Poisson draws (Knuth, Atkinson rejection, chunked inversion and a
normal approximation) dispatched by lambda and by the engine's policy, running
on numba CPU loops or CUDA.
"""

__version__ = "0.1.0"

__all__ = [
	"DispatchPolicy",
	"ENGINES",
	"Engine",
	"PoissonGenerator",
	"PoissonKernels",
	"compile_kernels",
	"generate_poisson",
	"get_engine",
	"seed_states",
]

# Conditionally export GPU generator if available
try:
	from .generator_gpu import PoissonGeneratorGPU
	__all__.append("PoissonGeneratorGPU")
except ImportError:
	pass
