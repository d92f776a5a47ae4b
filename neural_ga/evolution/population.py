"""
Population management for the genetic algorithm.

Handles:
- Initial random population creation
- Rebuilding a population around an existing (e.g. deserialized) network
- Inferring a provider configuration from a network's own topology
"""

from typing import List, Optional

import numpy as np

from ..core.mutation import mutate_network
from ..core.networks import NetworkUnit, create_network
from .config import ProviderConfig, POPULATION_STREAM


def initialize_population(config: ProviderConfig) -> List[NetworkUnit]:
    """
    Create a random population of the configured topology.

    Every unit draws its weights from its own generator spawned from the
    configuration seed, so no two units share a random stream or weights.

    Args:
        config: Validated provider configuration

    Returns:
        List of config.population_size freshly initialised networks
    """
    seed_sequence = config.seed_sequence(POPULATION_STREAM)
    return [
        create_network(config.topology, np.random.default_rng(child_seed))
        for child_seed in seed_sequence.spawn(config.population_size)
    ]


def reconstruct_population(
    network: NetworkUnit,
    config: ProviderConfig,
) -> List[NetworkUnit]:
    """
    Create a population around an existing network.

    Slot 0 holds the network itself; every other slot holds a mutated copy
    of it. Each copy is mutated with its own generator spawned from the
    configuration seed, so copies differ from each other and a seeded
    configuration rebuilds the same population in any process.

    Args:
        network: Seed network, must match config.topology
        config: Provider configuration (usually from config_from_network)

    Returns:
        List of config.population_size networks
    """
    if network.topology != config.topology:
        raise ValueError("The seed network does not match the configured topology")

    seed_sequence = config.seed_sequence(POPULATION_STREAM)
    population = [network]
    for child_seed in seed_sequence.spawn(config.population_size - 1):
        rng = np.random.default_rng(child_seed)
        population.append(mutate_network(network, config.weights_mutation_rate, rng))
    return population


def config_from_network(
    network: NetworkUnit,
    population_size: int,
    weights_mutation_rate: int,
    elite_samples: int,
    n_workers: Optional[int] = None,
    seed: Optional[int] = None,
) -> ProviderConfig:
    """
    Build a provider configuration using the network's own topology.

    Raises:
        ValueError: If the hyperparameters are out of range
    """
    return ProviderConfig(
        topology=network.topology,
        population_size=population_size,
        weights_mutation_rate=weights_mutation_rate,
        elite_samples=elite_samples,
        n_workers=n_workers,
        seed=seed,
    )


def population_matches(population: List[NetworkUnit], config: ProviderConfig) -> bool:
    """Check size and topology of a population against a configuration."""
    return (
        len(population) == config.population_size
        and all(n.topology == config.topology for n in population)
    )
