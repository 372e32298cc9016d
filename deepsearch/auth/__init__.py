from .session_guard import BearerTokenSessionGuard, Identity, SessionGuard

__all__ = ["BearerTokenSessionGuard", "Identity", "SessionGuard"]
