"""Per-worker random streams for reproducible Monte Carlo sampling.

Every random draw in the renderer takes an explicit ``stream`` handle: an
index into a Taichi field of xorshift32 states. The integrator gives each
pixel its own stream, so concurrent pixels never share generator state and a
fixed seed reproduces an image bit for bit regardless of how Taichi schedules
the parallel loop.

Streams are seeded on the host with NumPy (SplitMix64 over the seed and the
stream index) and advanced on the device with xorshift32, which only needs
shifts and xors.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.sampler import seed_streams, random_float
    >>> seed_streams(1234)
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     return random_float(0)
"""

import logging

import numpy as np
import taichi as ti

logger = logging.getLogger(__name__)

# One stream per pixel of the largest supported render target
MAX_STREAMS = 2048 * 2048

# 2^-24: maps the top 24 bits of a draw onto [0, 1)
_INV_2_24 = 1.0 / 16777216.0

_rng_states = ti.field(dtype=ti.u32, shape=MAX_STREAMS)

_current_seed: int | None = None


def _splitmix64(values: np.ndarray) -> np.ndarray:
    """Mix 64-bit integers into well-distributed 64-bit outputs."""
    z = values + np.uint64(0x9E3779B97F4A7C15)
    z = (z ^ (z >> np.uint64(30))) * np.uint64(0xBF58476D1CE4E5B9)
    z = (z ^ (z >> np.uint64(27))) * np.uint64(0x94D049BB133111EB)
    return z ^ (z >> np.uint64(31))


def make_stream_states(seed: int, count: int = MAX_STREAMS) -> np.ndarray:
    """Derive the initial xorshift32 state of each stream from a seed.

    Args:
        seed: Any Python integer. Reduced modulo 2^64.
        count: Number of streams to derive.

    Returns:
        A uint32 array of non-zero states (xorshift32 has no zero state).
    """
    seed_mixed = _splitmix64(np.array([seed % (1 << 64)], dtype=np.uint64))
    indices = np.arange(count, dtype=np.uint64)
    mixed = _splitmix64(indices ^ seed_mixed)
    states = (mixed & np.uint64(0xFFFFFFFF)).astype(np.uint32)
    states[states == 0] = np.uint32(0x9E3779B9)
    return states


def seed_streams(seed: int | None = None) -> int:
    """Reseed every random stream.

    Args:
        seed: Seed for all streams. If None, a fresh seed is drawn from
            operating system entropy.

    Returns:
        The seed that was used, so nondeterministic runs can be replayed.
    """
    global _current_seed

    if seed is None:
        seed = int(np.random.SeedSequence().entropy)
    _rng_states.from_numpy(make_stream_states(seed))
    _current_seed = seed
    logger.debug("Seeded %d random streams with seed %d", MAX_STREAMS, seed)
    return seed


def get_current_seed() -> int | None:
    """Return the seed of the last seed_streams() call, or None."""
    return _current_seed


@ti.func
def next_u32(stream: ti.i32) -> ti.u32:
    """Advance a stream and return its next 32-bit value."""
    x = _rng_states[stream]
    x ^= x << ti.u32(13)
    x ^= x >> ti.u32(17)
    x ^= x << ti.u32(5)
    _rng_states[stream] = x
    return x


@ti.func
def random_float(stream: ti.i32) -> ti.f32:
    """Draw a uniform float in [0, 1) from a stream."""
    return ti.cast(next_u32(stream) >> ti.u32(8), ti.f32) * _INV_2_24


@ti.func
def random_range(stream: ti.i32, lo: ti.f32, hi: ti.f32) -> ti.f32:
    """Draw a uniform float in [lo, hi) from a stream."""
    return lo + (hi - lo) * random_float(stream)
