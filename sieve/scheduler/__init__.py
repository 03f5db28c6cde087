"""Request scheduling helpers."""

from .stagger import Sleeper, Stagger, stagger_delay

__all__ = ["Sleeper", "Stagger", "stagger_delay"]
