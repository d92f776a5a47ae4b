"""
Provider configuration.

Validated once at construction; a provider is never created around an
invalid configuration.
"""

from dataclasses import dataclass
from multiprocessing import cpu_count
from typing import Any, Dict, Optional

import numpy as np

from ..core.networks import Topology


# Random streams derived from ProviderConfig.seed
POPULATION_STREAM = 0
SELECTION_STREAM = 1
MUTATION_STREAM = 2


@dataclass(frozen=True)
class ProviderConfig:
    """Configuration for a genetic algorithm provider."""
    # Network shape shared by the whole population
    topology: Topology

    # Population parameters
    population_size: int
    weights_mutation_rate: int  # percentage per weight
    elite_samples: int

    # Parallelization
    n_workers: Optional[int] = None

    # Reproducibility
    seed: Optional[int] = None

    def __post_init__(self):
        """Validate population parameters."""
        if self.population_size <= 0:
            raise ValueError("The population must have at least one element")
        if not 0 < self.weights_mutation_rate <= 99:
            raise ValueError(
                f"The mutation rate must be between 1 and 99, got {self.weights_mutation_rate}"
            )
        if not 0 <= self.elite_samples < self.population_size:
            raise ValueError(
                "The number of elite samples must be a non-negative number "
                f"less than the population size ({self.population_size}), "
                f"got {self.elite_samples}"
            )
        if self.n_workers is not None and self.n_workers <= 0:
            raise ValueError(f"n_workers must be at least 1, got {self.n_workers}")

    @property
    def workers(self) -> int:
        """Number of worker threads used for evaluation and mutation."""
        return self.n_workers or max(1, cpu_count() - 1)

    def seed_sequence(self, stream: int) -> np.random.SeedSequence:
        """
        Root seed sequence of one random stream of a run.

        Streams with different numbers never share spawned children, even
        when they come from the same configuration seed.
        """
        return np.random.SeedSequence(self.seed, spawn_key=(stream,))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'topology': self.topology.to_dict(),
            'population_size': self.population_size,
            'weights_mutation_rate': self.weights_mutation_rate,
            'elite_samples': self.elite_samples,
            'n_workers': self.n_workers,
            'seed': self.seed,
        }


def make_config(
    input_size: int,
    output_size: int,
    hidden_size: int,
    second_hidden_size: int,
    z1_threshold: Optional[float],
    z2_threshold: Optional[float],
    z3_threshold: Optional[float],
    population_size: int,
    weights_mutation_rate: int,
    elite_samples: int,
    n_workers: Optional[int] = None,
    seed: Optional[int] = None,
) -> ProviderConfig:
    """
    Build and validate a configuration from flat parameters.

    Raises:
        ValueError: If any size, threshold or hyperparameter is out of range
    """
    topology = Topology(
        input_size=input_size,
        output_size=output_size,
        hidden_size=hidden_size,
        second_hidden_size=second_hidden_size,
        z1_threshold=z1_threshold,
        z2_threshold=z2_threshold,
        z3_threshold=z3_threshold,
    )
    return ProviderConfig(
        topology=topology,
        population_size=population_size,
        weights_mutation_rate=weights_mutation_rate,
        elite_samples=elite_samples,
        n_workers=n_workers,
        seed=seed,
    )
