"""
authlane/ -- Pluggable authentication and authorization for FastAPI/Starlette.

Layer rule: authlane/ imports only stdlib + third-party libraries.
It does NOT import from api/, web/, accounts/, or core/.
api/, web/ and accounts/ import from authlane/, not the other way around.
"""

from authlane.config import AuthLaneConfig
from authlane.context import AuthContext, MemoryCookies, MemorySession
from authlane.engine import AuthLane
from authlane.errors import AuthLaneError, AuthRedirect, MissingMiddlewareError, RegistryFrozenError
from authlane.records import CredentialRecord, UserRecord
from authlane.registry import DEFAULT_ROLE, StrategyRegistry

__all__ = [
    "DEFAULT_ROLE",
    "AuthContext",
    "AuthLane",
    "AuthLaneConfig",
    "AuthLaneError",
    "AuthRedirect",
    "CredentialRecord",
    "MemoryCookies",
    "MemorySession",
    "MissingMiddlewareError",
    "RegistryFrozenError",
    "StrategyRegistry",
    "UserRecord",
]
