from services.auth_service import AuthService, TokenPair

__all__ = ["AuthService", "TokenPair"]
