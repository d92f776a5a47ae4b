"""
Activation functions used by the network units.

Every layer squashes its pre-activations with a sigmoid. A layer may also
carry an activation threshold in (0, 1): the sigmoid output is then turned
into a binary step, firing 1.0 where it reaches the threshold.
"""

import numpy as np
from typing import Optional


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Sigmoid - smooth, bounded (0, 1)."""
    # Clip to avoid overflow
    x = np.clip(x, -500, 500)
    return 1 / (1 + np.exp(-x))


def step(x: np.ndarray, threshold: float) -> np.ndarray:
    """Binary step: 1.0 where x >= threshold, 0.0 elsewhere."""
    return (x >= threshold).astype(float)


def activate(z: np.ndarray, threshold: Optional[float] = None) -> np.ndarray:
    """
    Apply the layer activation to pre-activations.

    Args:
        z: Pre-activation values
        threshold: Optional firing threshold in (0, 1)

    Returns:
        Sigmoid output, binarised when a threshold is set
    """
    activated = sigmoid(z)
    if threshold is None:
        return activated
    return step(activated, threshold)


def validate_threshold(name: str, threshold: Optional[float]) -> None:
    """Raise ValueError unless the threshold is absent or strictly inside (0, 1)."""
    if threshold is None:
        return
    if not 0 < threshold < 1:
        raise ValueError(f"{name} must be between 0 and 1 (exclusive), got {threshold}")
