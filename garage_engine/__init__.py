"""Race resolution and reward economy engine for a car-collecting game bot."""

__version__ = "0.4.0"
