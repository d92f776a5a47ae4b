"""Network units and the primitives the genetic algorithm breeds them with."""

from .networks import (
    Topology,
    NetworkUnit,
    SingleLayerNetwork,
    TwoLayerNetwork,
    create_network,
    build_network,
)
from .mutation import random_mutate, mutate_network
from .serialization import serialize_network, deserialize_network

__all__ = [
    'Topology',
    'NetworkUnit',
    'SingleLayerNetwork',
    'TwoLayerNetwork',
    'create_network',
    'build_network',
    'random_mutate',
    'mutate_network',
    'serialize_network',
    'deserialize_network',
]
