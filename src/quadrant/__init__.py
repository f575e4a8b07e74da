"""Quadrant - skills, risk and manager workflows for people teams."""

__version__ = "0.1.0"
