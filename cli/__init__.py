"""
Token Registry Command Line Interface
"""

from token_registry import __version__

__all__ = ['__version__']
