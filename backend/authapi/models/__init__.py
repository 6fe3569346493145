from authapi.models.oauth_identity import OAuthIdentity, OAuthProvider
from authapi.models.single_use_token import SingleUseToken, TokenType
from authapi.models.user import User

__all__ = [
    "OAuthIdentity",
    "OAuthProvider",
    "SingleUseToken",
    "TokenType",
    "User",
]
