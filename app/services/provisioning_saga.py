# File: app/services/provisioning_saga.py
"""
Tenant provisioning saga.

1. External resources, best-effort and bounded by PROVISIONING_TIMEOUT_SECONDS.
   Any failure is replaced by placeholder resources and the saga continues.
2. Tenant row        } one transaction, errors propagate
3. Manager invitation }
4. Invitation email, failure only flips notification_sent.
"""
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.core.config import Settings, settings as default_settings
from app.core.exceptions import ConflictError, TransactionError, ValidationError
from app.models.invitation import Invitation, InvitationRole
from app.models.tenant import ProvisioningStatus, Tenant, TenantStatus
from app.schemas.tenant import TenantProvisionRequest
from app.services.invitation_service import issue_invitation, send_invitation_email
from app.services.resource_provisioner import (
    PlaceholderResources,
    ProvisioningResult,
    RealResources,
    ResourceProvisioner,
    build_placeholder_resources,
)
from app.services.notification_gateway import NotificationGateway
from app.utils.slug import slugify
from app.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

PLAN_PRICES = {
    "basic": Decimal("49"),
    "standard": Decimal("99"),
    "premium": Decimal("199"),
    "enterprise": Decimal("399"),
}
CYCLE_DISCOUNTS = {
    "monthly": Decimal("0"),
    "quarterly": Decimal("0.05"),
    "yearly": Decimal("0.10"),
}
BILLING_PERIOD = timedelta(days=30)


def calculate_monthly_price(plan: str, billing_cycle: str = "monthly", custom_price: Optional[float] = None) -> float:
    if plan == "custom" and custom_price is not None:
        base = Decimal(str(custom_price))
    else:
        base = PLAN_PRICES.get(plan, PLAN_PRICES["standard"])
    discounted = base * (Decimal("1") - CYCLE_DISCOUNTS.get(billing_cycle, Decimal("0")))
    return float(discounted.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def build_billing(descriptor: TenantProvisionRequest, now: datetime) -> Dict[str, Any]:
    return {
        "plan": descriptor.plan,
        "billing_cycle": descriptor.billing_cycle,
        "monthly_price": calculate_monthly_price(descriptor.plan, descriptor.billing_cycle, descriptor.custom_price),
        "payment_method": descriptor.payment_method,
        "billing_email": descriptor.billing_email or descriptor.manager_email,
        "billing_address": descriptor.billing_address,
        "tax_id": descriptor.tax_id,
        "notes": descriptor.notes,
        "next_billing_date": (now + BILLING_PERIOD).isoformat(),
    }


@dataclass
class ProvisioningOutcome:
    tenant: Tenant
    manager_invitation: Invitation
    resources: ProvisioningResult
    notification_sent: bool
    notification_error: Optional[str] = None

    @property
    def placeholder(self) -> bool:
        return isinstance(self.resources, PlaceholderResources)


class ProvisioningSaga:
    def __init__(
        self,
        db: Session,
        provisioner: ResourceProvisioner,
        gateway: NotificationGateway,
        config: Optional[Settings] = None,
    ):
        self.db = db
        self.provisioner = provisioner
        self.gateway = gateway
        self.config = config or default_settings

    def _validate(self, descriptor: TenantProvisionRequest) -> str:
        if not descriptor.agency_name or not descriptor.agency_name.strip():
            raise ValidationError("Agency name is required")
        if not descriptor.manager_name or not descriptor.manager_name.strip():
            raise ValidationError("Manager name is required")
        slug = slugify(descriptor.agency_name)
        if not slug:
            raise ValidationError("Agency name must contain letters or digits", {"agency_name": descriptor.agency_name})
        if descriptor.billing_cycle not in CYCLE_DISCOUNTS:
            raise ValidationError(
                f"Unsupported billing cycle: {descriptor.billing_cycle}",
                {"allowed": sorted(CYCLE_DISCOUNTS)},
            )
        if descriptor.plan == "custom" and (descriptor.custom_price is None or descriptor.custom_price <= 0):
            raise ValidationError("Custom plan requires a positive custom_price")
        return slug

    def _check_conflicts(self, descriptor: TenantProvisionRequest, slug: str) -> None:
        if crud.invitation.get_by_email(self.db, email=descriptor.manager_email):
            raise ConflictError(
                f"A user or invitation already exists for {descriptor.manager_email}",
                {"email": descriptor.manager_email},
            )
        if crud.tenant.get_by_slug(self.db, slug=slug):
            raise ConflictError(f"An agency named '{descriptor.agency_name}' already exists", {"slug": slug})

    def _create_resources(self, descriptor: TenantProvisionRequest) -> ProvisioningResult:
        timeout = self.config.PROVISIONING_TIMEOUT_SECONDS
        # No context manager: leaving the with block would wait for a hung call
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="provisioner")
        try:
            future = executor.submit(self.provisioner.provision, descriptor)
            resources = future.result(timeout=timeout)
        except FutureTimeoutError:
            reason = f"Resource provisioning timed out after {timeout:g}s"
            logger.warning(f"{reason} for {descriptor.agency_name}, using placeholder resources")
            return build_placeholder_resources(descriptor, reason, self.config)
        except Exception as e:
            reason = f"Resource provisioning failed: {e}"
            logger.warning(f"{reason} for {descriptor.agency_name}, using placeholder resources")
            return build_placeholder_resources(descriptor, reason, self.config)
        finally:
            executor.shutdown(wait=False)

        logger.info(f"External resources created for {descriptor.agency_name}")
        return RealResources(resources=resources)

    def provision_tenant(
        self, descriptor: TenantProvisionRequest, now: Optional[datetime] = None
    ) -> ProvisioningOutcome:
        now = ensure_utc(now or utcnow())
        slug = self._validate(descriptor)
        self._check_conflicts(descriptor, slug)

        logger.info(f"Provisioning tenant {descriptor.agency_name} ({slug}) for {descriptor.manager_email}")

        # Step 1
        resources = self._create_resources(descriptor)

        # Steps 2 and 3
        try:
            tenant = crud.tenant.create(self.db, obj_in={
                "name": descriptor.agency_name.strip(),
                "slug": slug,
                "contact_email": descriptor.manager_email.lower(),
                "city": descriptor.city,
                "description": descriptor.description,
                "status": TenantStatus.ACTIVE.value,
                "plan": descriptor.plan,
                "billing": build_billing(descriptor, now),
                "branding": {
                    "domain": descriptor.domain,
                    "logo_url": descriptor.logo_url,
                    "primary_color": descriptor.primary_color,
                    "secondary_color": descriptor.secondary_color,
                },
                "provisioning_status": (
                    ProvisioningStatus.PLACEHOLDER.value
                    if isinstance(resources, PlaceholderResources)
                    else ProvisioningStatus.PROVISIONED.value
                ),
                "provisioning_resources": resources.resources,
                "provisioning_error": resources.reason if isinstance(resources, PlaceholderResources) else None,
            })
            invitation = issue_invitation(
                self.db,
                email=descriptor.manager_email,
                full_name=descriptor.manager_name,
                role=InvitationRole.ADMINISTRATOR,
                tenant=tenant,
                invited_by=descriptor.invited_by,
                now=now,
                config=self.config,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Provisioning {slug} hit a uniqueness violation: {e.orig}")
            raise ConflictError(
                "Agency or manager email already exists",
                {"slug": slug, "email": descriptor.manager_email},
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Provisioning {slug} failed while writing tenant and invitation: {e}")
            raise TransactionError("Could not create tenant and manager invitation") from e

        logger.info(f"Tenant {tenant.id} ({slug}) created with manager invitation {invitation.id}")

        # Step 4
        result = send_invitation_email(self.db, self.gateway, invitation, now, self.config)

        return ProvisioningOutcome(
            tenant=tenant,
            manager_invitation=invitation,
            resources=resources,
            notification_sent=result.success,
            notification_error=result.error,
        )
