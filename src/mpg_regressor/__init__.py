"""Horsepower to MPG affine regression pipeline."""

__version__ = "0.1.0"
