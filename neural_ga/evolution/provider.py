"""
Genetic algorithm provider: construction paths and start/stop control.

A provider owns one EvolutionEngine and runs it on a background thread
between start() and stop(). At most one loop is active per provider.
"""

from typing import List, Optional
import logging
import threading

from ..core.networks import NetworkUnit
from ..core.serialization import deserialize_network
from .config import ProviderConfig, make_config
from .engine import EvolutionEngine, ProgressCallback, BestNetworkCallback
from .fitness import FitnessFunction
from .history import EvolutionHistory, EvolutionResult, GeneticAlgorithmProgress
from .population import (
    initialize_population,
    reconstruct_population,
    config_from_network,
)

logger = logging.getLogger(__name__)


class GeneticAlgorithmProvider:
    """
    Breeds networks to maximize a fitness function.

    Usage:
        provider = GeneticAlgorithmProvider.new_single_layer(
            fitness_fn, input_size=4, output_size=2, size=16,
            population_size=50, weights_mutation_rate=5, elite_samples=2,
        )
        provider.progress_callback = print
        provider.start()
        ...
        provider.stop()
        best = provider.best_network
    """

    def __init__(
        self,
        fitness_fn: FitnessFunction,
        config: ProviderConfig,
        population: Optional[List[NetworkUnit]] = None,
    ):
        """
        Initialize provider.

        Args:
            fitness_fn: Function scoring a network, fitness_fn(uid, forward) -> float
            config: Validated provider configuration
            population: Optional starting population (random if not provided)
        """
        if not callable(fitness_fn):
            raise ValueError("The fitness function can't be None")

        if population is None:
            population = initialize_population(config)

        self.config = config
        self._engine = EvolutionEngine(config, population, fitness_fn)

        # Run state, guarded by _lock
        self._lock = threading.Lock()
        self._cancel: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

        self.last_error: Optional[BaseException] = None

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def new_single_layer(
        cls,
        fitness_fn: FitnessFunction,
        input_size: int,
        output_size: int,
        size: int,
        z1_threshold: Optional[float] = None,
        z2_threshold: Optional[float] = None,
        population_size: int = 100,
        weights_mutation_rate: int = 5,
        elite_samples: int = 0,
        n_workers: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> 'GeneticAlgorithmProvider':
        """
        Create a provider breeding networks with a single hidden layer.

        Args:
            fitness_fn: Fitness function used to evaluate the networks
            input_size: Number of inputs
            output_size: Number of outputs
            size: Number of neurons in the hidden layer
            z1_threshold: Optional threshold of the hidden layer
            z2_threshold: Optional threshold of the output layer
            population_size: Number of networks in the population
            weights_mutation_rate: Mutation probability of each weight (percent)
            elite_samples: Number of best networks copied to each new generation
            n_workers: Worker threads (default: cpu_count - 1)
            seed: Random seed for reproducibility

        Raises:
            ValueError: If any parameter is out of range
        """
        config = make_config(
            input_size, output_size, size, 0,
            z1_threshold, z2_threshold, None,
            population_size, weights_mutation_rate, elite_samples,
            n_workers=n_workers, seed=seed,
        )
        return cls(fitness_fn, config)

    @classmethod
    def new_two_layers(
        cls,
        fitness_fn: FitnessFunction,
        input_size: int,
        output_size: int,
        first_hidden_size: int,
        second_hidden_size: int,
        z1_threshold: Optional[float] = None,
        z2_threshold: Optional[float] = None,
        z3_threshold: Optional[float] = None,
        population_size: int = 100,
        weights_mutation_rate: int = 5,
        elite_samples: int = 0,
        n_workers: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> 'GeneticAlgorithmProvider':
        """
        Create a provider breeding networks with two hidden layers.

        A second_hidden_size of 0 falls back to a single hidden layer.

        Raises:
            ValueError: If any parameter is out of range
        """
        config = make_config(
            input_size, output_size, first_hidden_size, second_hidden_size,
            z1_threshold, z2_threshold, z3_threshold,
            population_size, weights_mutation_rate, elite_samples,
            n_workers=n_workers, seed=seed,
        )
        return cls(fitness_fn, config)

    @classmethod
    def from_network(
        cls,
        fitness_fn: FitnessFunction,
        network: NetworkUnit,
        population_size: int = 100,
        weights_mutation_rate: int = 5,
        elite_samples: int = 0,
        n_workers: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> 'GeneticAlgorithmProvider':
        """
        Create a provider whose population is built around an existing network.

        The topology is taken from the network itself.

        Raises:
            TypeError: If network is not a NetworkUnit
            ValueError: If any parameter is out of range
        """
        if not isinstance(network, NetworkUnit):
            raise TypeError(f"Expected a NetworkUnit, got {type(network).__name__}")

        config = config_from_network(
            network, population_size, weights_mutation_rate, elite_samples,
            n_workers=n_workers, seed=seed,
        )
        return cls(fitness_fn, config, reconstruct_population(network, config))

    @classmethod
    def from_serialized_network(
        cls,
        fitness_fn: FitnessFunction,
        network_data: bytes,
        population_size: int = 100,
        weights_mutation_rate: int = 5,
        elite_samples: int = 0,
        n_workers: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> Optional['GeneticAlgorithmProvider']:
        """
        Create a provider from a serialized network.

        Returns:
            The provider, or None if network_data is not a valid network
        """
        network = deserialize_network(network_data)
        if network is None:
            return None
        return cls.from_network(
            fitness_fn, network, population_size, weights_mutation_rate, elite_samples,
            n_workers=n_workers, seed=seed,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> bool:
        """
        Start breeding networks in the background.

        Returns:
            True if started, False if the provider was already running
        """
        with self._lock:
            if self._cancel is not None:
                return False

            cancel = threading.Event()
            thread = threading.Thread(
                target=self._run_loop,
                args=(cancel,),
                name='neural-ga-loop',
                daemon=True,
            )
            self._cancel = cancel
            self._thread = thread
            self.last_error = None
            thread.start()

        logger.info(f"Genetic algorithm started at generation {self.generation}")
        return True

    def stop(self) -> bool:
        """
        Request the background loop to stop after its current generation.

        Does not wait for the loop to exit; see join().

        Returns:
            True if stopped, False if the provider was not running
        """
        with self._lock:
            if self._cancel is None:
                return False
            self._cancel.set()
            self._cancel = None

        logger.info(f"Genetic algorithm stop requested at generation {self.generation}")
        return True

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the most recently started loop to exit.

        Args:
            timeout: Maximum time to wait in seconds (None waits forever)

        Returns:
            True if no loop thread is alive anymore
        """
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _run_loop(self, cancel: threading.Event) -> None:
        """Background thread body."""
        try:
            self._engine.run(cancel)
        except Exception as e:
            logger.exception(f"Genetic algorithm stopped by an error at generation {self.generation}")
            with self._lock:
                # A loop stopped before failing leaves the current run untouched
                if self._cancel is cancel:
                    self.last_error = e
                    self._cancel = None

    @property
    def is_running(self) -> bool:
        """Whether a background loop is currently active."""
        return self._cancel is not None

    # -------------------------------------------------------------------------
    # Foreground stepping
    # -------------------------------------------------------------------------

    def _ensure_idle(self) -> None:
        if self.is_running:
            raise RuntimeError("The provider is running in the background; stop it first")

    def run_generation(self) -> GeneticAlgorithmProgress:
        """
        Run a single generation in the calling thread.

        Errors raised by the fitness function propagate to the caller.
        """
        self._ensure_idle()
        return self._engine.run_generation()

    def evolve(
        self,
        n_generations: int,
        patience: Optional[int] = None,
        min_improvement: float = 0.001,
    ) -> EvolutionResult:
        """Run a bounded number of generations in the calling thread."""
        self._ensure_idle()
        return self._engine.evolve(n_generations, patience, min_improvement)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def generation(self) -> int:
        """Number of generations completed since the provider was created."""
        return self._engine.generation

    @property
    def best_fitness(self) -> float:
        """Maximum fitness reached by the provider."""
        return self._engine.best_fitness

    @property
    def best_network(self) -> Optional[NetworkUnit]:
        """Best network produced so far."""
        return self._engine.best_network

    @property
    def population(self) -> List[NetworkUnit]:
        """Snapshot of the current population."""
        return self._engine.population

    @property
    def history(self) -> EvolutionHistory:
        return self._engine.history

    @property
    def progress_callback(self) -> Optional[ProgressCallback]:
        return self._engine.progress_callback

    @progress_callback.setter
    def progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        self._engine.progress_callback = callback

    @property
    def best_network_callback(self) -> Optional[BestNetworkCallback]:
        return self._engine.best_network_callback

    @best_network_callback.setter
    def best_network_callback(self, callback: Optional[BestNetworkCallback]) -> None:
        self._engine.best_network_callback = callback
