"""
CLI module for keyword matching.

Provides command-line tools for matching, estimation and index builds.
"""

from .main import main

__all__ = ["main"]
