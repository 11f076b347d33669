# File: app/api/v1/endpoints/tenants.py
from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import logging

from app import schemas
from app.core import deps
from app.db.database import get_db
from app.services.notification_gateway import NotificationGateway
from app.services.provisioning_saga import ProvisioningSaga
from app.services.resource_provisioner import PlaceholderResources, ResourceProvisioner

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/provision",
    response_model=schemas.ProvisionTenantResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(deps.require_owner_api_key)],
)
def provision_tenant(
    *,
    db: Session = Depends(get_db),
    request_in: schemas.TenantProvisionRequest,
    provisioner: ResourceProvisioner = Depends(deps.get_resource_provisioner),
    gateway: NotificationGateway = Depends(deps.get_gateway)
) -> Any:
    """Create an agency, its infrastructure and the manager invitation."""
    outcome = ProvisioningSaga(db, provisioner, gateway).provision_tenant(request_in)

    placeholder = isinstance(outcome.resources, PlaceholderResources)
    message = f"Agency '{outcome.tenant.name}' created"
    if placeholder:
        message += " with placeholder resources"
    if not outcome.notification_sent:
        message += "; invitation email was not delivered, resend it from the invitations list"

    return schemas.ProvisionTenantResponse(
        message=message,
        tenant=schemas.TenantResponse.model_validate(outcome.tenant),
        manager_invitation=schemas.InvitationResponse.model_validate(outcome.manager_invitation),
        resources=outcome.resources.resources,
        placeholder=placeholder,
        placeholder_reason=outcome.resources.reason if placeholder else None,
        notification_sent=outcome.notification_sent,
        notification_error=outcome.notification_error,
    )
