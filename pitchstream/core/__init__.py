"""Core components for the pitchstream application."""

# Import interfaces for easier access
from .interfaces import (
    IAudioInput,
    IPitchEstimator,
)

__all__ = ["IAudioInput", "IPitchEstimator"]
