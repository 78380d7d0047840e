"""
CLI commands.
"""

from .shapes import shapes

__all__ = ["shapes"]
