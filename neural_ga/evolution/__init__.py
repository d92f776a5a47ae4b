"""
Genetic algorithm for feed-forward networks.

Evolves a population of networks toward a caller-supplied fitness function
using tournament selection, elitism, two-parent crossover and per-weight
mutation instead of gradient descent.

Key components:
- ProviderConfig: Validated topology and hyperparameters
- EvolutionEngine: One generation at a time (evaluate, select, breed, mutate)
- GeneticAlgorithmProvider: Construction paths and start/stop control

Example usage:
    from neural_ga.evolution import GeneticAlgorithmProvider

    def fitness(uid, forward):
        return -float(abs(forward([0.5, 0.5])[0] - 1.0))

    provider = GeneticAlgorithmProvider.new_single_layer(
        fitness, input_size=2, output_size=1, size=8,
        population_size=40, weights_mutation_rate=5, elite_samples=2,
    )
    result = provider.evolve(n_generations=30)
    print(f"Best fitness: {result.best_fitness:.3f}")
"""

from .config import ProviderConfig, make_config
from .fitness import (
    ScoredNetwork,
    InvariantViolation,
    evaluate_population,
    summarize_scores,
)
from .operators import (
    tournament_selection,
    elitism_selection,
    crossover_pool,
    breed_offspring,
    mutate_population,
)
from .population import (
    initialize_population,
    reconstruct_population,
    config_from_network,
)
from .history import (
    GeneticAlgorithmProgress,
    BestNetworkChanged,
    EvolutionHistory,
    EvolutionResult,
)
from .engine import EvolutionEngine
from .provider import GeneticAlgorithmProvider

__all__ = [
    # Core classes
    'ProviderConfig',
    'EvolutionEngine',
    'GeneticAlgorithmProvider',
    'ScoredNetwork',
    'InvariantViolation',
    # Reports
    'GeneticAlgorithmProgress',
    'BestNetworkChanged',
    'EvolutionHistory',
    'EvolutionResult',
    # Config
    'make_config',
    # Fitness
    'evaluate_population',
    'summarize_scores',
    # Operators
    'tournament_selection',
    'elitism_selection',
    'crossover_pool',
    'breed_offspring',
    'mutate_population',
    # Population
    'initialize_population',
    'reconstruct_population',
    'config_from_network',
]
