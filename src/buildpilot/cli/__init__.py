"""
Command-line interface for the buildpilot package.

This module provides the main CLI entry point for the build orchestrator.
"""

from .main import main, main_cli

__all__ = [
    "main",
    "main_cli",
]
