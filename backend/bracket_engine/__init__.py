"""Tournament bracket engine: generation, scheduling, progression and standings."""

__version__ = "0.1.0"
