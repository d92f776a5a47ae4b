"""
Byte-stream codec for a single network unit.

Networks are stored in numpy's .npz container (pickling disabled):
- format_version: codec version, currently 1
- sizes: input, output, hidden and second hidden sizes
- thresholds: z1..z3, NaN where a threshold is absent
- w0, w1[, w2]: the weight matrices, input side first
"""

import io
import logging
import struct
import zipfile
import zlib
from typing import Optional

import numpy as np

from .networks import NetworkUnit, Topology, build_network

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

# What np.load, zipfile and the topology checks raise on a bad stream.
# zipfile reports unsupported compression methods and flags with
# NotImplementedError and encryption flags with RuntimeError.
_DECODE_ERRORS = (
    ValueError,
    KeyError,
    TypeError,
    AttributeError,
    OSError,
    EOFError,
    OverflowError,
    RuntimeError,
    struct.error,
    zipfile.BadZipFile,
    zlib.error,
)


def serialize_network(network: NetworkUnit) -> bytes:
    """Serialize a network's topology and weights to bytes."""
    topology = network.topology
    sizes = np.array([
        topology.input_size,
        topology.output_size,
        topology.hidden_size,
        topology.second_hidden_size,
    ], dtype=np.int64)
    thresholds = np.array([
        np.nan if t is None else t
        for t in (topology.z1_threshold, topology.z2_threshold, topology.z3_threshold)
    ], dtype=float)

    arrays = {f'w{i}': w for i, w in enumerate(network.weights)}

    buffer = io.BytesIO()
    np.savez(
        buffer,
        format_version=np.array(FORMAT_VERSION, dtype=np.int64),
        sizes=sizes,
        thresholds=thresholds,
        **arrays,
    )
    return buffer.getvalue()


def deserialize_network(data: bytes) -> Optional[NetworkUnit]:
    """
    Rebuild a network from bytes produced by serialize_network.

    Args:
        data: Serialized network

    Returns:
        The network, or None if the stream is malformed or incompatible
    """
    try:
        with np.load(io.BytesIO(data), allow_pickle=False) as archive:
            version = int(archive['format_version'])
            if version != FORMAT_VERSION:
                logger.warning(f"Unsupported network format version {version}")
                return None

            sizes = [int(s) for s in archive['sizes']]
            thresholds = [None if np.isnan(t) else float(t) for t in archive['thresholds']]
            if len(sizes) != 4 or len(thresholds) != 3:
                logger.warning("Serialized network has a malformed header")
                return None

            topology = Topology(*sizes, *thresholds)
            n_matrices = len(topology.weight_shapes)
            weights = [archive[f'w{i}'] for i in range(n_matrices)]

        return build_network(topology, weights)
    except _DECODE_ERRORS as e:
        logger.warning(f"Failed to deserialize network: {e}")
        return None
