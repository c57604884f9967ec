"""Room-level location inference for a beacon-tracked cat."""

__version__ = "0.1.0"
