from enum import Enum

"""
Dispatch policies and the lambda thresholds each of them routes on.
"""

# Standard policy: Knuth below SMALL, Atkinson up to HUGE inclusive, normal above
LAMBDA_THRESHOLD_SMALL = 64.0
LAMBDA_THRESHOLD_HUGE = 4000.0

# Chunked policy: iterative chunked sampler below this, normal at or above
LAMBDA_THRESHOLD_CHUNKED_HUGE = 1000.0

# Width of one exponent chunk in the iterative sampler; exp(-CHUNK_SIZE) is
# still a normal double
CHUNK_SIZE = 500.0


class DispatchPolicy(Enum):
	"""Static tag carried by an engine, selecting how Poisson draws are routed"""
	STANDARD = 'standard'
	CHUNKED = 'chunked'
