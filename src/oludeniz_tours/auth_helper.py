import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from oludeniz_tours.config import Config
from oludeniz_tours.booking_app.errors import Forbidden, Unauthenticated
from oludeniz_tours.booking_app.models import AdminUser
from oludeniz_tours.services.auth_service import AuthServiceClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    display_name: str
    phone: str = ""
    roles: FrozenSet[str] = field(default_factory=frozenset)


def parse_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthenticated()
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated()
    return token


def identity_from_user(user: Dict[str, Any]) -> Identity:
    """Map the auth service's user record onto an Identity."""
    meta = user.get("user_metadata") or {}
    app_meta = user.get("app_metadata") or {}
    email = (user.get("email") or "").strip()
    display_name = (
        meta.get("name")
        or meta.get("full_name")
        or (email.split("@")[0] if email else "")
        or "Guest"
    )
    phone = meta.get("phone") or user.get("phone") or ""

    roles = app_meta.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    if app_meta.get("role"):
        roles = list(roles) + [app_meta["role"]]

    return Identity(
        id=str(user["id"]),
        email=email,
        display_name=str(display_name).strip(),
        phone=str(phone),
        roles=frozenset(str(r).lower() for r in roles),
    )


def resolve_identity(authorization: Optional[str], client: Optional[AuthServiceClient] = None) -> Identity:
    """Resolve the caller behind ``Authorization: Bearer <token>`` or raise Unauthenticated."""
    token = parse_bearer_token(authorization)
    client = client or AuthServiceClient()
    try:
        user = client.get_user(token)
    except Exception as e:
        logger.warning("auth service lookup failed: %s", e)
        raise Unauthenticated() from e
    if not user:
        raise Unauthenticated()
    return identity_from_user(user)


def is_admin(identity: Identity, db: Session) -> bool:
    if Config.ADMIN_ROLE_CLAIM and Config.ADMIN_ROLE_CLAIM.lower() in identity.roles:
        return True
    email = (identity.email or "").strip().lower()
    if not email:
        return False
    return db.query(AdminUser).filter(AdminUser.email == email).first() is not None


def require_admin(identity: Identity, db: Session) -> Identity:
    if not is_admin(identity, db):
        logger.warning("non-admin %s attempted an admin action", identity.email)
        raise Forbidden()
    return identity
