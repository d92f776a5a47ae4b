"""
Weight mutation primitive.

Mutation only perturbs weight values; the topology of a network never changes.
"""

import numpy as np

from .networks import NetworkUnit


def random_mutate(
    matrix: np.ndarray,
    mutation_rate: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Perturb individual weights of a matrix.

    Each weight is independently selected with probability mutation_rate%
    and shifted by a standard normal sample.

    Args:
        matrix: Weight matrix to mutate (left untouched)
        mutation_rate: Per-weight mutation probability, as a percentage
        rng: Random generator owned by the caller

    Returns:
        New mutated matrix with the same shape
    """
    mask = rng.random(matrix.shape) < mutation_rate / 100
    noise = rng.standard_normal(matrix.shape)
    return np.where(mask, matrix + noise, matrix)


def mutate_network(
    network: NetworkUnit,
    mutation_rate: int,
    rng: np.random.Generator,
) -> NetworkUnit:
    """Return a new network with every weight matrix passed through random_mutate."""
    mutated = [random_mutate(w, mutation_rate, rng) for w in network.weights]
    return network.with_weights(mutated)
