import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.config import settings
from app.models.person import PersonRole

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The ``{user_id, role}`` pair the identity provider vouches for."""

    user_id: uuid.UUID
    role: PersonRole

    @property
    def is_admin(self) -> bool:
        return self.role == PersonRole.admin


def sign_token(user_id: str | uuid.UUID, role: str = "client") -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": message, "details": None},
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_principal(token: str) -> Principal:
    options = {"verify_iss": bool(settings.jwt_issuer)}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options=options,
        )
    except JWTError as e:
        logger.info("Rejected bearer token: %s", e)
        raise _unauthorized("Invalid or expired token")
    try:
        user_id = uuid.UUID(str(payload["sub"]))
        role = PersonRole(payload.get("role", PersonRole.client.value))
    except (KeyError, ValueError):
        raise _unauthorized("Token is missing a valid subject or role")
    return Principal(user_id=user_id, role=role)


def require_user_auth(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Principal:
    if creds is None or not creds.credentials:
        raise _unauthorized("Not authenticated")
    return decode_principal(creds.credentials)


def require_role(role: str):
    wanted = PersonRole(role)

    def _dependency(principal: Principal = Depends(require_user_auth)) -> Principal:
        if principal.role != wanted:
            logger.warning(
                "User %s with role %s denied %s-only route",
                principal.user_id,
                principal.role.value,
                wanted.value,
            )
            raise HTTPException(
                status_code=403,
                detail={
                    "code": "forbidden",
                    "message": f"{wanted.value.capitalize()} access required",
                    "details": None,
                },
            )
        return principal

    return _dependency
