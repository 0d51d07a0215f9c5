"""Simulated workload module."""

from .sampler import DistributionSampler

__all__ = ["DistributionSampler"]
