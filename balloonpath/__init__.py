"""balloonpath — high-altitude balloon trajectory prediction engine."""

__version__ = "0.1.0"
