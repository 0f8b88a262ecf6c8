"""featuremap: dependency graph clustering with stable identities."""

__version__ = "0.4.0"
