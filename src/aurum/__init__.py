"""Aurum: gold options sentiment signals and multi-model AI consensus."""

__version__ = "0.1.0"
