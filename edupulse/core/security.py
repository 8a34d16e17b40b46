# edupulse/core/security.py
from typing import Any, Dict

from jose import JWTError, jwt
from passlib.context import CryptContext

from edupulse.core.config import get_jwt_settings
from edupulse.core.errors import TokenError
from edupulse.core.logging import logger

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto"
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify a bearer token issued by the auth provider. The audience is
    only checked when one is configured.
    """
    jwt_settings = get_jwt_settings()
    options = {"verify_aud": bool(jwt_settings["audience"])}
    try:
        payload = jwt.decode(
            token,
            jwt_settings["secret_key"],
            algorithms=[jwt_settings["algorithm"]],
            audience=jwt_settings["audience"],
            options=options
        )
    except JWTError as e:
        logger.error(f"Token verification failed: {str(e)}")
        raise TokenError("Could not validate credentials")

    if not payload.get("sub"):
        raise TokenError("Token has no subject")
    return payload


def get_owner_id(token: str) -> str:
    return str(verify_token(token)["sub"])
