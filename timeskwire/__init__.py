"""Timewarrior extension that renders tracked intervals into a PDF report."""

__version__ = "0.2.0"
