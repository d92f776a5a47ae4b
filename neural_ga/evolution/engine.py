"""
Main genetic algorithm engine.

Orchestrates one generation at a time:
1. Evaluate fitness (parallel)
2. Track the all-time best network
3. Report progress
4. Tournament selection into a mating pool
5. Copy the elite, breed the rest via crossover
6. Mutate every child (parallel)
7. Replace the population
"""

from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, List, Optional
import logging
import sys
import threading
import time

import numpy as np

from ..core.networks import NetworkUnit
from .config import ProviderConfig, SELECTION_STREAM, MUTATION_STREAM
from .fitness import (
    FitnessFunction,
    InvariantViolation,
    ScoredNetwork,
    evaluate_population,
    summarize_scores,
)
from .history import (
    DEFAULT_HISTORY_WINDOW,
    BestNetworkChanged,
    EvolutionHistory,
    EvolutionResult,
    GeneticAlgorithmProgress,
    generate_run_id,
)
from .operators import (
    tournament_selection,
    elitism_selection,
    crossover_pool,
    breed_offspring,
    mutate_population,
)
from .population import population_matches

logger = logging.getLogger(__name__)

# Starting value of the all-time best score, so any first result improves on it
MIN_FITNESS = -sys.float_info.max

ProgressCallback = Callable[[GeneticAlgorithmProgress], None]
BestNetworkCallback = Callable[[BestNetworkChanged], None]


class EvolutionEngine:
    """
    Genetic algorithm over a population of network units.

    The best record, the generation counter and the population are only
    written by the thread running a generation; a lock keeps generations
    from overlapping.
    """

    def __init__(
        self,
        config: ProviderConfig,
        population: List[NetworkUnit],
        fitness_fn: FitnessFunction,
        progress_callback: Optional[ProgressCallback] = None,
        best_network_callback: Optional[BestNetworkCallback] = None,
        history_window: int = DEFAULT_HISTORY_WINDOW,
    ):
        """
        Initialize evolution engine.

        Args:
            config: Validated provider configuration
            population: Initial population matching config
            fitness_fn: Caller-supplied fitness function
            progress_callback: Optional callback(progress) after every generation
            best_network_callback: Optional callback(change) on every new all-time best
            history_window: Number of recent progress reports kept in history
        """
        if not population_matches(population, config):
            raise ValueError(
                f"The population must hold {config.population_size} networks "
                "of the configured topology"
            )

        self.config = config
        self.fitness_fn = fitness_fn
        self.progress_callback = progress_callback
        self.best_network_callback = best_network_callback

        self._population = list(population)
        self._best: Optional[ScoredNetwork] = None
        self.generation = 0
        self.history = EvolutionHistory(history_window)

        # Selection and crossover draw from one generator on the engine thread;
        # mutations get generators spawned per call
        self._rng = np.random.default_rng(config.seed_sequence(SELECTION_STREAM))
        self._mutation_seeds = config.seed_sequence(MUTATION_STREAM)

        self._generation_lock = threading.Lock()

    @property
    def population(self) -> List[NetworkUnit]:
        """Snapshot of the current population."""
        return list(self._population)

    @property
    def best_fitness(self) -> float:
        """Highest fitness observed so far."""
        return self._best.fitness if self._best is not None else MIN_FITNESS

    @property
    def best_network(self) -> Optional[NetworkUnit]:
        """Network that obtained best_fitness, None before the first generation."""
        return self._best.network if self._best is not None else None

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(
            max_workers=self.config.workers,
            thread_name_prefix='neural-ga-worker',
        )

    def run_generation(self) -> GeneticAlgorithmProgress:
        """Execute one generation of evolution with a dedicated worker pool."""
        with self._new_executor() as executor:
            with self._generation_lock:
                return self._step(executor)

    def run(self, cancel_event: threading.Event) -> None:
        """
        Run generations until cancel_event is set.

        The event is checked before each generation only; a generation that
        has started always completes.
        """
        with self._new_executor() as executor:
            while not cancel_event.is_set():
                with self._generation_lock:
                    self._step(executor)

    def _step(self, executor: Executor) -> GeneticAlgorithmProgress:
        n = self.config.population_size
        n_elite = self.config.elite_samples

        # 1. Evaluate fitness (fan-out, fan-in)
        scored = evaluate_population(self._population, self.fitness_fn, executor)

        # 2. Best of generation and total score
        generation_best, total = summarize_scores(scored)

        # 3. All-time best
        if generation_best.fitness > self.best_fitness:
            self._update_best(generation_best)

        # 4. Report
        progress = GeneticAlgorithmProgress(
            generation=self.generation,
            best_fitness=generation_best.fitness,
            mean_fitness=total / n,
            all_time_best_fitness=self.best_fitness,
        )
        self.history.record(progress)
        logger.debug(
            f"Generation {progress.generation}: best={progress.best_fitness:.4f} "
            f"mean={progress.mean_fitness:.4f} all-time={progress.all_time_best_fitness:.4f}"
        )
        if self.progress_callback:
            self.progress_callback(progress)
        self.generation += 1

        # 5. Selection
        mating_pool = tournament_selection(scored, self._rng)

        # 6. Elitism
        children = elitism_selection(mating_pool, n_elite)

        # 7. Crossover
        parents = crossover_pool(mating_pool, n_elite)
        children.extend(breed_offspring(parents, n - n_elite, self._rng))

        # 8. Validate
        if len(children) != n:
            raise InvariantViolation(
                f"Generation {progress.generation} produced {len(children)} children, "
                f"expected {n}"
            )

        # 9. Mutation (fan-out, fan-in), then replace
        self._population = mutate_population(
            children,
            self.config.weights_mutation_rate,
            executor,
            self._mutation_seeds,
        )

        return progress

    def _update_best(self, result: ScoredNetwork) -> None:
        """Replace the all-time best record and notify listeners."""
        self._best = result
        logger.info(f"New best network {result.network.uid} with fitness {result.fitness:.4f}")
        if self.best_network_callback:
            self.best_network_callback(BestNetworkChanged(result.network, result.fitness))

    def evolve(
        self,
        n_generations: int,
        patience: Optional[int] = None,
        min_improvement: float = 0.001,
    ) -> EvolutionResult:
        """
        Run a bounded number of generations in the calling thread.

        Args:
            n_generations: Maximum number of generations
            patience: Stop after this many generations without improvement
                (None disables early stopping)
            min_improvement: Minimum improvement to count as progress

        Returns:
            EvolutionResult for the generations run by this call
        """
        start_time = time.time()
        run_id = generate_run_id(self.config.topology)
        early_stopped = False
        early_stop_reason = None
        completed = 0

        with self._new_executor() as executor:
            for _ in range(n_generations):
                with self._generation_lock:
                    self._step(executor)
                completed += 1

                if patience is not None and self.history.should_early_stop(
                    patience=patience,
                    min_improvement=min_improvement,
                ):
                    early_stopped = True
                    early_stop_reason = (
                        f"No improvement > {min_improvement} "
                        f"in {patience} generations"
                    )
                    break

        return EvolutionResult(
            run_id=run_id,
            generations_completed=completed,
            best_fitness=self.best_fitness,
            best_network=self.best_network,
            history=self.history,
            runtime_seconds=time.time() - start_time,
            early_stopped=early_stopped,
            early_stop_reason=early_stop_reason,
        )
