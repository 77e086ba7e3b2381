from poissonrand import PoissonGenerator

def draw_basic_samples():
	"""Draw Poisson samples in every regime of the standard policy"""
	print("Creating generator (first run will trigger Numba JIT compilation)...")
	generator = PoissonGenerator(engine='pcg32', device='cpu')
	
	for lam in (0.5, 10.0, 250.0, 3000.0, 50000.0):
		samples = generator.generate(200000, lam)
		print(f"lambda={lam:>9.1f}: mean={samples.mean():12.3f}  var={samples.var():12.3f}")
	
	print("Done!")

if __name__ == "__main__":
	draw_basic_samples()
