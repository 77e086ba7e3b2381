"""
Test each Poisson sampling method in isolation on the CPU backend
"""
import math

import numpy as np
import pytest

from poissonrand import DispatchPolicy, Engine, compile_kernels, seed_states
from poissonrand.engines import PCG32, SPLITMIX64
from poissonrand.generator_cpu import build_fill


def counting_next(state):
    """64-bit LCG in state[0]; state[1] counts 32-bit words drawn"""
    state[1] += np.uint64(1)
    state[0] = state[0] * np.uint64(6364136223846793005) + np.uint64(1442695040888963407)
    return state[0] >> np.uint64(32)


COUNTING = Engine(name='counting', state_words=2, next_uint32=counting_next, policy=DispatchPolicy.STANDARD)


def scripted_next(state):
    """Returns state[1], state[2], then 0x80000000 forever; state[0] counts words drawn"""
    i = state[0]
    state[0] += np.uint64(1)
    if i == np.uint64(0):
        return state[1]
    if i == np.uint64(1):
        return state[2]
    return np.uint64(0x80000000)


def saturated_next(state):
    """Always the largest 32-bit word, so every uniform is 1 - 2**-53"""
    state[0] += np.uint64(1)
    return np.uint64(0xFFFFFFFF)


SCRIPTED = Engine(name='scripted', state_words=3, next_uint32=scripted_next)
SATURATED = Engine(name='saturated', state_words=1, next_uint32=saturated_next)


def run_sampler(sampler, engine, lam, n_samples=200000, n_states=256, seed=2016):
    """Fill n_samples with a single sampler, return (samples, final states)"""
    states = seed_states(engine, seed, n_states)
    out = np.zeros(n_samples, dtype=np.uint32)
    build_fill(sampler)(states, lam, out)
    return out, states


def assert_moments(samples, lam, tol=0.02):
    mean = samples.mean()
    var = samples.var()
    print(f"lambda={lam}: mean={mean:.4f}, var={var:.4f}")
    assert abs(mean - lam) / lam < tol
    assert abs(var - lam) / lam < tol


def counted_uniform_draws(states):
    """Each uniform double consumes two 32-bit words"""
    return int(states[:, 1].sum()) / 2.0


def fresh_counting_states(n_states=256, seed=2016):
    states = seed_states(COUNTING, seed, n_states)
    states[:, 1] = 0
    return states


# ============================================================================
# SHARED HELPER
# ============================================================================

def test_log_factorial():
    log_factorial = compile_kernels(PCG32, 'cpu').log_factorial

    assert log_factorial(0) == 0.0
    assert log_factorial(1) == 0.0
    assert log_factorial(2) == pytest.approx(math.log(2.0))
    assert log_factorial(10) == pytest.approx(math.log(math.factorial(10)))
    assert log_factorial(170) == pytest.approx(math.lgamma(171.0))


# ============================================================================
# SMALL LAMBDA (KNUTH)
# ============================================================================

@pytest.mark.parametrize("lam", [1.0, 5.0, 30.0, 63.9])
def test_small_moments(lam):
    kernels = compile_kernels(PCG32, 'cpu')
    samples, _ = run_sampler(kernels.poisson_small, PCG32, lam)
    assert_moments(samples, lam)


@pytest.mark.parametrize("lam", [0.5, 5.0, 40.0])
def test_small_draw_count(lam):
    """Knuth's method uses lam + 1 uniform draws on average"""
    kernels = compile_kernels(COUNTING, 'cpu')
    states = fresh_counting_states()
    n_samples = 100000
    out = np.zeros(n_samples, dtype=np.uint32)

    build_fill(kernels.poisson_small)(states, lam, out)

    per_call = counted_uniform_draws(states) / n_samples
    assert per_call == pytest.approx(lam + 1.0, rel=0.02)
    # Exactly one draw per returned unit plus the terminating draw
    assert counted_uniform_draws(states) == out.astype(np.int64).sum() + n_samples


def test_small_near_zero_lambda():
    """lambda = 0.001 returns 0 with probability exp(-0.001)"""
    kernels = compile_kernels(PCG32, 'cpu')
    samples, _ = run_sampler(kernels.poisson_small, PCG32, 0.001)

    zero_fraction = np.mean(samples == 0)
    assert abs(zero_fraction - math.exp(-0.001)) < 0.001
    assert samples.max() <= 3


# ============================================================================
# LARGE LAMBDA (ATKINSON)
# ============================================================================

@pytest.mark.parametrize("lam", [64.0, 500.0, 2000.0, 4000.0])
def test_large_moments(lam):
    kernels = compile_kernels(PCG32, 'cpu')
    samples, _ = run_sampler(kernels.poisson_large, PCG32, lam)
    assert_moments(samples, lam)


def test_large_acceptance_rate():
    """Rejection rounds stay few: each round uses at most two uniforms"""
    kernels = compile_kernels(COUNTING, 'cpu')
    states = fresh_counting_states()
    n_samples = 50000
    out = np.zeros(n_samples, dtype=np.uint32)

    build_fill(kernels.poisson_large)(states, 500.0, out)

    per_call = counted_uniform_draws(states) / n_samples
    assert 2.0 <= per_call < 6.0


@pytest.mark.parametrize("first_words", [(0, 0), (0, 64)])
def test_large_rejects_negative_candidate_after_one_draw(first_words):
    """A first uniform of 0 or 2**-53 gives n < 0, then u = v ~ 0.5 is accepted at n = lam"""
    kernels = compile_kernels(SCRIPTED, 'cpu')
    state = np.array([0, first_words[0], first_words[1]], dtype=np.uint64)

    assert kernels.poisson_large(state, 64.0) == 64
    # One uniform for the rejected round, two for the accepted one
    assert state[0] == 6


# ============================================================================
# HUGE LAMBDA (NORMAL APPROXIMATION)
# ============================================================================

@pytest.mark.parametrize("lam", [1000.0, 10000.0, 1.0e6])
def test_huge_moments(lam):
    kernels = compile_kernels(PCG32, 'cpu')
    samples, _ = run_sampler(kernels.poisson_huge, PCG32, lam)
    assert_moments(samples, lam)


def test_huge_consumes_one_normal():
    kernels = compile_kernels(PCG32, 'cpu')
    state = seed_states(PCG32, 99, 1)[0]
    a = state.copy()
    b = state.copy()

    kernels.poisson_huge(a, 10000.0)
    kernels.draw_normal(b)

    assert np.array_equal(a, b)


def test_huge_rounds_normal_draw():
    kernels = compile_kernels(PCG32, 'cpu')
    state = seed_states(PCG32, 5, 1)[0]
    a = state.copy()
    b = state.copy()

    lam = 12345.6
    result = kernels.poisson_huge(a, lam)
    z = kernels.draw_normal(b)

    assert result == math.floor(math.sqrt(lam) * z + lam + 0.5)


def test_huge_clamps_negative_result_to_zero():
    """u1 close to 1 and u2 close to 0.5 give z ~ -8.57, far below -sqrt(4)"""
    kernels = compile_kernels(SCRIPTED, 'cpu')
    state = np.array([0, 0xFFFFFFFF, 0xFFFFFFFF], dtype=np.uint64)
    normal_state = state.copy()

    assert kernels.draw_normal(normal_state) < -8.0
    assert kernels.poisson_huge(state, 4.0) == 0
    assert state[0] == 4


# ============================================================================
# ITERATIVE CHUNKED
# ============================================================================

@pytest.mark.parametrize("lam", [1.0, 64.0, 499.0, 500.0, 750.0, 999.0])
def test_chunked_moments(lam):
    kernels = compile_kernels(SPLITMIX64, 'cpu')
    samples, _ = run_sampler(kernels.poisson_chunked, SPLITMIX64, lam)
    assert_moments(samples, lam)


@pytest.mark.parametrize("lam", [0.01, 3.0, 250.0, 500.0, 501.0, 999.9])
def test_chunked_single_draw(lam):
    """Exactly one uniform draw per call, whatever lambda is"""
    kernels = compile_kernels(COUNTING, 'cpu')
    states = fresh_counting_states()
    n_samples = 10000
    out = np.zeros(n_samples, dtype=np.uint32)

    build_fill(kernels.poisson_chunked)(states, lam, out)

    assert counted_uniform_draws(states) == n_samples


def test_chunked_state_matches_one_uniform():
    kernels = compile_kernels(SPLITMIX64, 'cpu')
    state = seed_states(SPLITMIX64, 11, 1)[0]
    a = state.copy()
    b = state.copy()

    kernels.poisson_chunked(a, 800.0)
    kernels.draw_uniform(b)

    assert np.array_equal(a, b)


@pytest.mark.parametrize("lam", [0.001, 1.0, 64.0, 499.9, 500.0, 750.0, 999.999])
def test_chunked_terminates_for_uniform_near_one(lam):
    """The cdf never reaches 1 - 2**-53 in floating point; the tail cut still ends the walk"""
    kernels = compile_kernels(SATURATED, 'cpu')
    state = np.zeros(1, dtype=np.uint64)

    k = kernels.poisson_chunked(state, lam)

    assert k >= lam
    assert state[0] == 2


def test_chunked_matches_inversion():
    """For lambda below one chunk the sampler is plain cdf inversion"""
    kernels = compile_kernels(SPLITMIX64, 'cpu')
    states = seed_states(SPLITMIX64, 3, 50)
    lam = 7.5

    for i in range(states.shape[0]):
        a = states[i].copy()
        b = states[i].copy()
        k = kernels.poisson_chunked(a, lam)
        u = kernels.draw_uniform(b)

        cdf = [math.exp(-lam) * sum(lam ** j / math.factorial(j) for j in range(m + 1)) for m in range(k + 1)]
        assert cdf[k] >= u - 1e-12
        if k > 0:
            assert cdf[k - 1] < u + 1e-12


# ============================================================================
# DETERMINISM
# ============================================================================

@pytest.mark.parametrize("name", [
    "poisson_small", "poisson_large", "poisson_huge", "poisson_chunked",
])
def test_sampler_determinism(name):
    """Copies of one state give identical sample sequences"""
    kernels = compile_kernels(PCG32, 'cpu')
    sampler = getattr(kernels, name)
    lam = {"poisson_small": 10.0, "poisson_large": 300.0, "poisson_huge": 5000.0, "poisson_chunked": 600.0}[name]

    state = seed_states(PCG32, 1234, 1)[0]
    a = state.copy()
    b = state.copy()

    seq_a = [sampler(a, lam) for _ in range(200)]
    seq_b = [sampler(b, lam) for _ in range(200)]

    assert seq_a == seq_b
    assert np.array_equal(a, b)
    assert all(value >= 0 for value in seq_a)
