try:
	from numba import cuda
	
	from poissonrand.generator_gpu import PoissonGeneratorGPU
	
	GPU_AVAILABLE = cuda.is_available()
except ImportError:
	GPU_AVAILABLE = False

def draw_gpu_samples():
	"""Draw samples on the GPU if available"""
	if not GPU_AVAILABLE:
		print("GPU not available, skipping this example")
		print("Install with: pip install poissonrand[gpu]")
		return
	
	print("Drawing 16M samples with GPU acceleration...")
	generator = PoissonGeneratorGPU(engine='pcg32', n_states=65536)
	samples = generator.generate(1 << 24, 100.0)
	
	print(f"mean={samples.mean():.3f}  var={samples.var():.3f}")
	print("Done!")

if __name__ == "__main__":
	draw_gpu_samples()
