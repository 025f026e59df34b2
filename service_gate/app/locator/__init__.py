"""
Token location.

Pure and synchronous: turns the header, query and body of a request into
at most one candidate bearer token.
"""

from .token_locator import TokenRequest, locate

__all__ = [
    "TokenRequest",
    "locate",
]
