"""Statistical distribution sampler for simulated screen load times."""

import logging
from typing import Any, Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)


class DistributionSampler:
    """Samples non-negative durations from configured distributions."""

    def __init__(self, seed: Optional[int] = None):
        """Initialize the sampler with optional random seed.

        Args:
            seed: Random seed for reproducibility
        """
        self.rng = np.random.default_rng(seed)

    def sample(self, distribution_config: Dict[str, Any]) -> float:
        """Sample a duration in seconds from the specified distribution.

        Args:
            distribution_config: Configuration dict with 'type' and distribution parameters.
                Examples:
                - {'type': 'Constant', 'value': 2.0}
                - {'type': 'Uniform', 'low': 0.5, 'high': 3.0}
                - {'type': 'LogNormal', 'mean': 0.0, 'sigma': 0.5}

        Returns:
            Sampled value, clamped to be non-negative
        """
        dist_type = distribution_config.get("type", "Constant")

        if dist_type == "Constant":
            value = distribution_config.get("value", 1.0)

        elif dist_type == "Uniform":
            low = distribution_config.get("low", 0.0)
            high = distribution_config.get("high", 1.0)
            value = self.rng.uniform(low, high)

        elif dist_type == "Normal":
            mean = distribution_config.get("mean", 0.0)
            # Support both 'std' and 'sigma' parameter names
            std = distribution_config.get("std", distribution_config.get("sigma", 1.0))
            value = self.rng.normal(mean, std)

        elif dist_type == "LogNormal":
            # Parameters of the underlying normal distribution
            mean = distribution_config.get("mean", 0.0)
            sigma = distribution_config.get("sigma", 1.0)
            value = self.rng.lognormal(mean, sigma)

        elif dist_type == "Exponential":
            rate = distribution_config.get("rate", 1.0)
            value = self.rng.exponential(1.0 / rate)

        else:
            logger.warning(f"Unknown distribution type: {dist_type}, using constant value 1.0")
            value = 1.0

        return max(0.0, float(value))
