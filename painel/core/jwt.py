# Bearer tokens are minted by the external identity provider.
# This service only verifies them: signature, expiry and type.

import logging

from jose import ExpiredSignatureError, JWTError, jwt

from painel.core.config import settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


def decode_access_token(token: str) -> dict | None:
    """Verified claims of an access token, or None when it is unusable."""
    try:
        claims = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require_exp": True},
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except JWTError as exc:
        logger.warning(f"Rejected token: {exc}")
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        logger.warning(f"Rejected token of type {claims.get('type')!r}")
        return None

    return claims
