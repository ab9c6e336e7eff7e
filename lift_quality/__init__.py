"""Weight-lifting exercise quality classifier: tuning and evaluation pipeline."""

__version__ = "0.1.0"
