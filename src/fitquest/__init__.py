"""fitquest: XP and achievement rules engine for a training log."""

__version__ = "0.1.0"
