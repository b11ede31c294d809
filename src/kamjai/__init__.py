"""KamJai learning-progression engine."""

from .consts import VERSION

__version__ = VERSION
