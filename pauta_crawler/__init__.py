"""Hearing agenda (pauta) crawler for the JTe portal."""

__version__ = "0.1.0"
