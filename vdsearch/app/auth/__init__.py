"""Admin authentication helpers and dependencies for the FastAPI app."""

from .schemas import AuthContext, IssuedToken

__all__ = ["AuthContext", "IssuedToken"]
