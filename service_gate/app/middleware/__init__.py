"""
Request authentication middleware.
"""

from .gate import BearerGate, enrich
from .orchestrator import ANONYMOUS, AuthContext, Orchestrator
from .responder import ErrorResponder, www_authenticate

__all__ = [
    "ANONYMOUS",
    "AuthContext",
    "BearerGate",
    "ErrorResponder",
    "Orchestrator",
    "enrich",
    "www_authenticate",
]
