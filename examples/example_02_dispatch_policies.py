from poissonrand import DispatchPolicy, Engine, PoissonGenerator
from poissonrand.engines import pcg32_next

def compare_policies():
	"""Same rates under the standard and the chunked dispatch policy"""
	# A new engine variant opts into a policy through its tag
	pcg32_chunked = Engine(
		name='pcg32-chunked',
		state_words=1,
		next_uint32=pcg32_next,
		policy=DispatchPolicy.CHUNKED
	)
	
	generators = {
		'pcg32 (standard)': PoissonGenerator(engine='pcg32', device='cpu'),
		'splitmix64 (chunked)': PoissonGenerator(engine='splitmix64', device='cpu'),
		'pcg32 (chunked)': PoissonGenerator(engine=pcg32_chunked, device='cpu'),
	}
	
	for lam in (500.0, 2000.0):
		print(f"\nlambda={lam}")
		for label, generator in generators.items():
			samples = generator.generate(200000, lam)
			print(f"  {label:<22} mean={samples.mean():10.3f}  var={samples.var():10.3f}")

if __name__ == "__main__":
	compare_policies()
