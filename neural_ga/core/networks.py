"""
Feed-forward network units bred by the genetic algorithm.

A network unit is the "individual" of the population. The evolution engine
only relies on the shared interface:
- forward(x): run an input batch through the network
- crossover(other, rng): combine two same-topology units into a child
- weights / with_weights(...): raw weight matrices in and out
- topology: layer sizes and activation thresholds

Two shapes exist: a single hidden layer and two hidden layers. Callers pick
one through create_network() and never need to check the concrete class.
"""

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from .activations import activate, validate_threshold


# Process-wide identity source; itertools.count is safe to share between threads
_uid_counter = itertools.count(1)


def next_network_uid() -> int:
    """Return a fresh, process-unique network identity."""
    return next(_uid_counter)


@dataclass(frozen=True)
class Topology:
    """
    Layer sizes and thresholds shared by every unit of a population.

    Attributes:
        input_size: Number of inputs
        output_size: Number of outputs
        hidden_size: Neurons in the first hidden layer
        second_hidden_size: Neurons in the second hidden layer (0 = single hidden layer)
        z1_threshold: Optional threshold of the first hidden layer
        z2_threshold: Optional threshold of the second layer (output layer when single)
        z3_threshold: Optional threshold of the output layer of two-layer networks
    """
    input_size: int
    output_size: int
    hidden_size: int
    second_hidden_size: int = 0
    z1_threshold: Optional[float] = None
    z2_threshold: Optional[float] = None
    z3_threshold: Optional[float] = None

    def __post_init__(self):
        """Validate layer sizes and thresholds."""
        if self.input_size <= 0 or self.output_size <= 0 or self.hidden_size <= 0:
            raise ValueError(
                "The input layer, the output layer and the first hidden layer "
                "must have at least one neuron each"
            )
        if self.second_hidden_size < 0:
            raise ValueError("The size of the second hidden layer can't be negative")
        validate_threshold('z1_threshold', self.z1_threshold)
        validate_threshold('z2_threshold', self.z2_threshold)
        validate_threshold('z3_threshold', self.z3_threshold)

    @property
    def is_two_layers(self) -> bool:
        """Whether networks of this topology have a second hidden layer."""
        return self.second_hidden_size > 0

    @property
    def layer_dims(self) -> Tuple[int, ...]:
        """Neuron count of every layer, input first."""
        if self.is_two_layers:
            return (self.input_size, self.hidden_size, self.second_hidden_size, self.output_size)
        return (self.input_size, self.hidden_size, self.output_size)

    @property
    def thresholds(self) -> Tuple[Optional[float], ...]:
        """Threshold applied after each weight matrix."""
        if self.is_two_layers:
            return (self.z1_threshold, self.z2_threshold, self.z3_threshold)
        return (self.z1_threshold, self.z2_threshold)

    @property
    def weight_shapes(self) -> Tuple[Tuple[int, int], ...]:
        """Expected shape of every weight matrix."""
        dims = self.layer_dims
        return tuple((dims[i], dims[i + 1]) for i in range(len(dims) - 1))

    @property
    def total_params(self) -> int:
        """Total number of weights."""
        return sum(rows * cols for rows, cols in self.weight_shapes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class NetworkUnit(ABC):
    """
    Base class for a candidate network.

    Weight matrices are owned by the unit: the accessors hand out copies and
    every operation that changes weights returns a new unit.
    """

    def __init__(self, topology: Topology, weights: Sequence[np.ndarray]):
        expected = topology.weight_shapes
        if len(weights) != len(expected):
            raise ValueError(f"Expected {len(expected)} weight matrices, got {len(weights)}")
        for i, (w, shape) in enumerate(zip(weights, expected)):
            if np.shape(w) != shape:
                raise ValueError(f"Weight matrix {i} has shape {np.shape(w)}, expected {shape}")

        self.topology = topology
        self.uid = next_network_uid()
        self._weights: Tuple[np.ndarray, ...] = tuple(
            np.array(w, dtype=float, copy=True) for w in weights
        )

    @property
    def weights(self) -> Tuple[np.ndarray, ...]:
        """Copies of the weight matrices, input side first."""
        return tuple(w.copy() for w in self._weights)

    @abstractmethod
    def with_weights(self, weights: Sequence[np.ndarray]) -> 'NetworkUnit':
        """Create a new unit of the same topology with the given weights."""

    def forward(self, x: np.ndarray) -> np.ndarray:
        """
        Forward pass through the network.

        Args:
            x: Input of shape (input_size,) or (n_samples, input_size)

        Returns:
            Output of shape (output_size,) or (n_samples, output_size)
        """
        x = np.asarray(x, dtype=float)
        single = x.ndim == 1
        current = np.atleast_2d(x)
        if current.shape[1] != self.topology.input_size:
            raise ValueError(
                f"Expected {self.topology.input_size} input features, got {current.shape[1]}"
            )

        for W, threshold in zip(self._weights, self.topology.thresholds):
            current = activate(current @ W, threshold)

        return current[0] if single else current

    def crossover(self, other: 'NetworkUnit', rng: np.random.Generator) -> 'NetworkUnit':
        """
        Two-point crossover, applied to each weight matrix independently.

        The child starts as a copy of this unit; the flattened weights between
        two random cut points are taken from the other parent.

        Args:
            other: Second parent, must share this unit's topology
            rng: Random generator used to pick the cut points

        Returns:
            A new child unit of the same topology
        """
        if other.topology != self.topology:
            raise ValueError("Crossover requires two networks with the same topology")

        child_weights = []
        for mine, theirs in zip(self._weights, other._weights):
            flat = mine.ravel().copy()
            start, end = np.sort(rng.integers(0, flat.size + 1, size=2))
            flat[start:end] = theirs.ravel()[start:end]
            child_weights.append(flat.reshape(mine.shape))

        return self.with_weights(child_weights)

    def __repr__(self) -> str:
        arch = '→'.join(str(d) for d in self.topology.layer_dims)
        return f"{type(self).__name__}(uid={self.uid}, arch={arch}, params={self.topology.total_params})"


class SingleLayerNetwork(NetworkUnit):
    """Network with one hidden layer: input → hidden → output."""

    def __init__(self, topology: Topology, weights: Sequence[np.ndarray]):
        if topology.is_two_layers:
            raise ValueError("SingleLayerNetwork requires a topology without a second hidden layer")
        super().__init__(topology, weights)

    def with_weights(self, weights: Sequence[np.ndarray]) -> 'SingleLayerNetwork':
        return SingleLayerNetwork(self.topology, weights)


class TwoLayerNetwork(NetworkUnit):
    """Network with two hidden layers: input → hidden → second hidden → output."""

    def __init__(self, topology: Topology, weights: Sequence[np.ndarray]):
        if not topology.is_two_layers:
            raise ValueError("TwoLayerNetwork requires a second hidden layer")
        super().__init__(topology, weights)

    def with_weights(self, weights: Sequence[np.ndarray]) -> 'TwoLayerNetwork':
        return TwoLayerNetwork(self.topology, weights)


def random_weights(topology: Topology, rng: np.random.Generator) -> Tuple[np.ndarray, ...]:
    """
    Draw Xavier-initialised weights for a topology.

    Args:
        topology: Network layer sizes
        rng: Random generator owned by the caller

    Returns:
        Tuple of freshly allocated weight matrices
    """
    matrices = []
    for fan_in, fan_out in topology.weight_shapes:
        std = np.sqrt(2.0 / (fan_in + fan_out))
        matrices.append(rng.standard_normal((fan_in, fan_out)) * std)
    return tuple(matrices)


def build_network(topology: Topology, weights: Sequence[np.ndarray]) -> NetworkUnit:
    """Wrap existing weights in the network class matching the topology."""
    if topology.is_two_layers:
        return TwoLayerNetwork(topology, weights)
    return SingleLayerNetwork(topology, weights)


def create_network(topology: Topology, rng: np.random.Generator) -> NetworkUnit:
    """Create a randomly initialised network of the given topology."""
    return build_network(topology, random_weights(topology, rng))
