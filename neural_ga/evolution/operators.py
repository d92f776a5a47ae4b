"""
Genetic operators: selection, crossover, and mutation.

These operators drive one generation of the search by:
- Pairing every result with a random rival and keeping the fitter one
- Copying the best pool members into the next generation unchanged
- Breeding the rest of the generation from the better part of the pool
- Perturbing the weights of every child
"""

from concurrent.futures import Executor
from typing import List, Sequence

import numpy as np

from ..core.mutation import mutate_network
from ..core.networks import NetworkUnit
from .fitness import ScoredNetwork


# =============================================================================
# Selection Operators
# =============================================================================

def draw_distinct(rng: np.random.Generator, n: int, excluded: int) -> int:
    """Draw an index uniformly from range(n), rejecting `excluded`."""
    while True:
        index = int(rng.integers(n))
        if index != excluded:
            return index


def tournament_selection(
    scored: Sequence[ScoredNetwork],
    rng: np.random.Generator,
) -> List[ScoredNetwork]:
    """
    Binary tournament building a mating pool of the same size.

    Every position i is matched against a random rival b != i; the pool
    entry at i is the rival only if it scored strictly higher.

    Args:
        scored: Results of this generation, index-aligned with the population
        rng: Selection random generator

    Returns:
        Mating pool (may contain duplicates)
    """
    n = len(scored)
    if n < 2:
        # No rival available
        return list(scored)

    pool = []
    for i in range(n):
        b = draw_distinct(rng, n, i)
        pool.append(scored[b] if scored[b].fitness > scored[i].fitness else scored[i])
    return pool


def elitism_selection(
    mating_pool: Sequence[ScoredNetwork],
    n_elite: int,
) -> List[NetworkUnit]:
    """
    Take the top n_elite networks of the pool, best first.

    The sort is stable, so among equal scores the earlier pool entry wins.
    """
    ranked = sorted(mating_pool, key=lambda r: r.fitness, reverse=True)
    return [r.network for r in ranked[:n_elite]]


def crossover_pool(
    mating_pool: Sequence[ScoredNetwork],
    n_elite: int,
) -> List[NetworkUnit]:
    """
    Drop the n_elite lowest scoring entries of the pool.

    This ordering is computed independently from elitism_selection: with
    tied scores at the boundary a network can be both an elite and a parent,
    or neither.

    Returns:
        Networks eligible as crossover parents, worst first
    """
    ranked = sorted(mating_pool, key=lambda r: r.fitness)
    return [r.network for r in ranked[n_elite:]]


# =============================================================================
# Crossover Operators
# =============================================================================

def breed_offspring(
    parents: Sequence[NetworkUnit],
    n_children: int,
    rng: np.random.Generator,
) -> List[NetworkUnit]:
    """
    Produce children by crossing over random pairs of distinct parents.

    Args:
        parents: Filtered mating pool
        n_children: Number of children to produce
        rng: Selection random generator, also used for the crossover points

    Returns:
        List of n_children new networks
    """
    n = len(parents)
    children = []
    for _ in range(n_children):
        if n < 2:
            # A single parent cannot be paired with a distinct mate
            a = b = 0
        else:
            a = int(rng.integers(n))
            b = draw_distinct(rng, n, a)
        children.append(parents[a].crossover(parents[b], rng))
    return children


# =============================================================================
# Mutation Operators
# =============================================================================

def _mutate_worker(
    network: NetworkUnit,
    mutation_rate: int,
    seed: np.random.SeedSequence,
) -> NetworkUnit:
    """Worker function: mutate one network with its own generator."""
    return mutate_network(network, mutation_rate, np.random.default_rng(seed))


def mutate_population(
    children: Sequence[NetworkUnit],
    mutation_rate: int,
    executor: Executor,
    seed_sequence: np.random.SeedSequence,
) -> List[NetworkUnit]:
    """
    Mutate every child in parallel.

    Each call gets a generator spawned from seed_sequence, so no generator is
    shared between worker threads. Blocks until all mutations complete.

    Returns:
        Mutated networks, in the order of children
    """
    seeds = seed_sequence.spawn(len(children))
    return list(executor.map(
        _mutate_worker,
        children,
        [mutation_rate] * len(children),
        seeds,
    ))
