"""
Authentication

Bearer token verification and caller resolution.
"""

from .dependencies import Caller, get_caller, get_token_claims
from .tokens import TokenManager, get_token_manager

__all__ = [
    "Caller",
    "get_caller",
    "get_token_claims",
    "TokenManager",
    "get_token_manager",
]
