from dataclasses import dataclass
from typing import Optional
import secrets

from fastapi import Depends, HTTPException, status, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app import crud
from app.db.database import get_db
from app.core.config import settings
from app.core.security import decode_token
from app.models.invitation import Invitation, InvitationRole, InvitationStatus
from app.services.notification_gateway import NotificationGateway, get_notification_gateway
from app.services.resource_provisioner import GitHubResourceProvisioner, ResourceProvisioner

security = HTTPBearer(auto_error=False)

INVITER_ROLES = (InvitationRole.ADMINISTRATOR, InvitationRole.SENIOR_MEMBER)


def get_gateway() -> NotificationGateway:
    return get_notification_gateway()


def get_resource_provisioner() -> ResourceProvisioner:
    return GitHubResourceProvisioner()


def _owner_key_matches(x_owner_api_key: Optional[str]) -> bool:
    if not settings.OWNER_API_KEY or not x_owner_api_key:
        return False
    return secrets.compare_digest(x_owner_api_key, settings.OWNER_API_KEY)


def require_owner_api_key(x_owner_api_key: Optional[str] = Header(None)) -> None:
    if not settings.OWNER_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Owner API key not configured",
        )
    if not _owner_key_matches(x_owner_api_key):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid owner API key")


def get_current_account(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Invitation:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("sub") is None:
        raise credentials_exception

    try:
        account = crud.invitation.get(db, int(payload["sub"]))
    except (TypeError, ValueError):
        raise credentials_exception

    if account is None or account.status != InvitationStatus.ACTIVE:
        raise credentials_exception
    return account


@dataclass
class Inviter:
    """Who is managing invitations: the platform owner, or a tenant account."""

    name: str
    tenant_id: Optional[int] = None
    is_owner: bool = False

    def can_manage(self, tenant_id: Optional[int]) -> bool:
        return self.is_owner or (tenant_id is not None and tenant_id == self.tenant_id)


def get_inviter(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_owner_api_key: Optional[str] = Header(None)
) -> Inviter:
    if _owner_key_matches(x_owner_api_key):
        return Inviter(name="Platform Owner", is_owner=True)

    account = get_current_account(db=db, credentials=credentials)
    if account.role not in INVITER_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")

    name = " ".join(part for part in (account.first_name, account.last_name) if part) or account.full_name
    return Inviter(name=name, tenant_id=account.tenant_id)
