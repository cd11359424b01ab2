"""Syntax checking for mathematical function signature notation."""

__version__ = "0.1.0"
