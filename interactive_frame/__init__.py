"""Head-tracked virtual window: off-axis projection through a fixed frame."""

__version__ = "0.1.0"
