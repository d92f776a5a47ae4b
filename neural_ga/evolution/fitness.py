"""
Fitness evaluation for a population of networks.

The caller supplies a fitness function with the signature
    fitness_fn(uid: int, forward: Callable[[ndarray], ndarray]) -> float
which is called once per network, concurrently, on a worker pool.
"""

from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

import numpy as np

from ..core.networks import NetworkUnit


ForwardFunction = Callable[[np.ndarray], np.ndarray]
FitnessFunction = Callable[[int, ForwardFunction], float]


class InvariantViolation(RuntimeError):
    """An internal consistency check of the engine failed."""


@dataclass(frozen=True)
class ScoredNetwork:
    """A network paired with the fitness score it obtained this generation."""
    network: NetworkUnit
    fitness: float


def _score(network: NetworkUnit, fitness_fn: FitnessFunction) -> ScoredNetwork:
    """Worker function: evaluate a single network."""
    return ScoredNetwork(network, float(fitness_fn(network.uid, network.forward)))


def evaluate_population(
    population: Sequence[NetworkUnit],
    fitness_fn: FitnessFunction,
    executor: Executor,
) -> List[ScoredNetwork]:
    """
    Evaluate every network in parallel.

    Blocks until all evaluations complete. Results keep the population order,
    which selection relies on.

    Args:
        population: Networks to evaluate
        fitness_fn: Caller-supplied fitness function
        executor: Worker pool running the evaluations

    Returns:
        List of ScoredNetwork, index-aligned with population

    Raises:
        InvariantViolation: If the population is empty
        Exception: Whatever the fitness function raised
    """
    if not population:
        raise InvariantViolation("Cannot evaluate an empty population")

    # map() yields in submission order and re-raises worker exceptions
    return list(executor.map(_score, population, [fitness_fn] * len(population)))


def summarize_scores(scored: Sequence[ScoredNetwork]) -> Tuple[ScoredNetwork, float]:
    """
    Find the generation's best result and the sum of all scores in one pass.

    Ties keep the first occurrence.

    Returns:
        Tuple of (best scored network, total fitness)
    """
    best = None
    total = 0.0
    for result in scored:
        if best is None or result.fitness > best.fitness:
            best = result
        total += result.fitness

    if best is None:
        raise InvariantViolation("No best result found for the evaluated population")
    return best, total
