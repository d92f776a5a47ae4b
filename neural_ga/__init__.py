"""Neural GA - breeding feed-forward networks with a genetic algorithm."""

from .core import Topology, NetworkUnit, serialize_network, deserialize_network
from .evolution import GeneticAlgorithmProvider, GeneticAlgorithmProgress, BestNetworkChanged

__version__ = '0.1.0'

__all__ = [
    'Topology',
    'NetworkUnit',
    'serialize_network',
    'deserialize_network',
    'GeneticAlgorithmProvider',
    'GeneticAlgorithmProgress',
    'BestNetworkChanged',
]
