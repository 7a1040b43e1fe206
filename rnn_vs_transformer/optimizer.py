"""
Optimization Helpers

Plain gradient descent is all the house-price model needs, and global-norm
clipping is the standard fix for the exploding gradients an RNN produces when
its recurrent weights are too large.

Classes:
    SGD: Stochastic (here: full-batch) gradient descent

Functions:
    global_gradient_norm: L2 norm over every gradient array
    clip_gradient_norm: Rescale gradients whose global norm is too large
"""

import logging
from typing import Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)


class SGD:
    """
    Gradient Descent.

    Update rule:
        theta = theta - learning_rate * gradient

    Parameters are updated in place so that the layer holding them sees the
    change without any copying back.
    """

    def __init__(self, learning_rate: float = 0.01):
        if learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {learning_rate}")
        self.learning_rate = learning_rate
        self.step_count = 0
        self._params: Optional[Dict[str, np.ndarray]] = None

    def initialize(self, parameters: Dict[str, np.ndarray]) -> None:
        """Register the parameter dictionary that ``step`` will update."""
        self._params = parameters
        self.step_count = 0

    def step(self, gradients: Dict[str, np.ndarray]) -> None:
        """
        Apply one update to every registered parameter.

        Raises:
            RuntimeError: If ``initialize`` was never called.
            KeyError: If a gradient names an unknown parameter.
        """
        if self._params is None:
            raise RuntimeError("SGD.step called before initialize")

        for name, gradient in gradients.items():
            if gradient is None:
                continue
            # In-place so the owning layer keeps pointing at the same array
            self._params[name] -= self.learning_rate * gradient

        self.step_count += 1


def global_gradient_norm(gradients: Dict[str, np.ndarray]) -> float:
    """Return sqrt(sum of squared entries) across all gradient arrays."""
    total = 0.0
    for gradient in gradients.values():
        if gradient is not None:
            total += float(np.sum(np.square(gradient)))
    return float(np.sqrt(total))


def clip_gradient_norm(
    gradients: Dict[str, np.ndarray], max_norm: float
) -> Dict[str, np.ndarray]:
    """
    Clip gradients by global norm.

    If the combined norm exceeds ``max_norm`` every gradient is scaled by the
    same factor, so the direction of the update is preserved and only its
    length shrinks.

    Args:
        gradients: Parameter name -> gradient array
        max_norm: Maximum allowed global norm

    Returns:
        A new dictionary; the input is not modified.
    """
    if max_norm <= 0:
        raise ValueError(f"max_norm must be positive, got {max_norm}")

    total_norm = global_gradient_norm(gradients)
    if total_norm > max_norm:
        clip_coefficient = max_norm / total_norm
        logger.debug(
            "Clipping gradient norm %.4f down to %.4f", total_norm, max_norm
        )
    else:
        clip_coefficient = 1.0

    return {
        name: (gradient * clip_coefficient if gradient is not None else None)
        for name, gradient in gradients.items()
    }
