"""
Progress reporting and bookkeeping for evolutionary runs.

Enables:
- Per-generation progress reports for callers
- Notifications when the all-time best network changes
- Recording the fitness trajectory of a provider
"""

from collections import deque
from dataclasses import dataclass, asdict
from typing import Deque, Dict, Any, Optional
import time
import uuid

from ..core.networks import NetworkUnit, Topology

# Reports kept by default; a background loop runs without bound
DEFAULT_HISTORY_WINDOW = 1000


@dataclass(frozen=True)
class GeneticAlgorithmProgress:
    """Report emitted once per completed generation."""
    generation: int
    best_fitness: float
    mean_fitness: float
    all_time_best_fitness: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BestNetworkChanged:
    """Notification carrying a new all-time best network."""
    network: NetworkUnit
    fitness: float


class EvolutionHistory:
    """
    Sliding window over the most recent progress reports.

    Only the last `window` reports are kept, so an endless background loop
    holds a constant amount of history. `total_recorded` still counts every
    report ever recorded.
    """

    def __init__(self, window: int = DEFAULT_HISTORY_WINDOW):
        if window < 1:
            raise ValueError(f"window must be at least 1, got {window}")
        self.window = window
        self.generations: Deque[GeneticAlgorithmProgress] = deque(maxlen=window)
        self.fitness_trajectory: Deque[float] = deque(maxlen=window)
        self.mean_trajectory: Deque[float] = deque(maxlen=window)
        self.total_recorded = 0

    def record(self, progress: GeneticAlgorithmProgress) -> None:
        """Record the report of a completed generation."""
        self.generations.append(progress)
        self.fitness_trajectory.append(progress.best_fitness)
        self.mean_trajectory.append(progress.mean_fitness)
        self.total_recorded += 1

    def __len__(self) -> int:
        return len(self.generations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert history to dictionary for serialization."""
        return {
            'window': self.window,
            'total_recorded': self.total_recorded,
            'generations': [g.to_dict() for g in self.generations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvolutionHistory':
        """Restore history from dictionary."""
        history = cls(data.get('window', DEFAULT_HISTORY_WINDOW))
        for g in data.get('generations', []):
            history.record(GeneticAlgorithmProgress(**g))
        history.total_recorded = max(data.get('total_recorded', 0), len(history))
        return history

    def should_early_stop(
        self,
        patience: int = 10,
        min_improvement: float = 0.001,
    ) -> bool:
        """
        Whether the all-time best has stalled over the last `patience` reports.

        Compares the all-time best of the newest report with the one carried
        `patience` reports earlier. Stalling can only be detected while the
        window holds more than `patience` reports.
        """
        if patience < 1 or len(self.generations) <= patience:
            return False

        latest = self.generations[-1].all_time_best_fitness
        before = self.generations[-patience - 1].all_time_best_fitness
        return latest - before < min_improvement


@dataclass
class EvolutionResult:
    """Results from a foreground evolution run."""
    run_id: str
    generations_completed: int
    best_fitness: float
    best_network: Optional[NetworkUnit]
    history: EvolutionHistory
    runtime_seconds: float
    early_stopped: bool
    early_stop_reason: Optional[str] = None

    def summary(self) -> str:
        """Generate summary string."""
        lines = [
            f"Evolution Run: {self.run_id}",
            f"Generations: {self.generations_completed}",
            f"Best fitness: {self.best_fitness:.4f}",
            f"Runtime: {self.runtime_seconds:.1f}s",
            f"Early stopped: {self.early_stopped}",
        ]
        if self.best_network is not None:
            lines.append(f"Best network: {self.best_network!r}")
        return '\n'.join(lines)


def generate_run_id(topology: Topology) -> str:
    """
    Identifier of one evolve() call, e.g. 'ga-2x6x1-1760781300-3fa9c1'.

    Carries the layer dimensions and the start time in epoch seconds.
    """
    layers = 'x'.join(str(d) for d in topology.layer_dims)
    return f"ga-{layers}-{int(time.time())}-{uuid.uuid4().hex[:6]}"
