"""
Token Registry CLI Commands Package

Command modules for the token registry CLI.
"""

__all__ = ['blockchain', 'token', 'config']
