"""Application services: the inference transaction and boot reporting."""

from .boot import BootService
from .inference import InferenceService

__all__ = ["BootService", "InferenceService"]
