import threading
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app import crud
from app.core.exceptions import ConflictError, TransactionError, UpstreamError, ValidationError
from app.models.invitation import Invitation, InvitationRole, InvitationStatus
from app.models.notification_log import NotificationLog
from app.models.tenant import Tenant
from app.services.provisioning_saga import ProvisioningSaga, calculate_monthly_price
from app.services.resource_provisioner import PlaceholderResources, RealResources
from app.utils.time_utils import ensure_utc
from conftest import T0, FakeGateway, FakeProvisioner, hours


@pytest.fixture
def saga(db, provisioner, gateway, config):
    return ProvisioningSaga(db, provisioner, gateway, config)


def test_provision_tenant_happy_path(saga, db, gateway, descriptor):
    outcome = saga.provision_tenant(descriptor, now=T0)

    assert isinstance(outcome.resources, RealResources)
    assert outcome.placeholder is False
    assert outcome.notification_sent is True

    tenant = outcome.tenant
    assert tenant.id is not None
    assert tenant.slug == "elite-properties"
    assert tenant.provisioning_status == "provisioned"
    assert tenant.provisioning_error is None
    assert tenant.provisioning_resources["repositories"]["frontend"]["name"] == "elite-properties-Frontend"
    assert tenant.billing["monthly_price"] == 99.0
    assert tenant.billing["billing_email"] == "sarah@eliteproperties.co.ke"
    assert tenant.billing["next_billing_date"] == (T0 + hours(24 * 30)).isoformat()

    invitation = outcome.manager_invitation
    assert invitation.role == InvitationRole.ADMINISTRATOR
    assert invitation.status == InvitationStatus.INVITED
    assert invitation.tenant_id == tenant.id
    assert ensure_utc(invitation.expires_at) - ensure_utc(invitation.issued_at) == hours(48)

    sent = gateway.sent("manager_invitation")
    assert len(sent) == 1
    assert sent[0]["recipient"] == "sarah@eliteproperties.co.ke"
    assert f"/setup-account?token={invitation.token}&type=manager" in sent[0]["text"]

    log = db.query(NotificationLog).one()
    assert log.status == "sent"
    assert log.invitation_id == invitation.id


def test_unreachable_provisioner_falls_back_to_placeholder(db, gateway, config, descriptor):
    provisioner = FakeProvisioner(error=UpstreamError("GitHub unreachable"))
    outcome = ProvisioningSaga(db, provisioner, gateway, config).provision_tenant(descriptor, now=T0)

    assert isinstance(outcome.resources, PlaceholderResources)
    assert outcome.resources.resources["placeholder"] is True
    assert "GitHub unreachable" in outcome.resources.reason
    assert outcome.tenant.id is not None
    assert outcome.manager_invitation.id is not None

    tenant = db.query(Tenant).one()
    assert tenant.provisioning_status == "placeholder"
    assert tenant.provisioning_resources["placeholder"] is True
    assert "GitHub unreachable" in tenant.provisioning_error


def test_unexpected_provisioner_error_also_falls_back(db, gateway, config, descriptor):
    provisioner = FakeProvisioner(error=RuntimeError("boom"))
    outcome = ProvisioningSaga(db, provisioner, gateway, config).provision_tenant(descriptor, now=T0)
    assert outcome.placeholder is True


def test_hung_provisioner_times_out(db, gateway, config, descriptor):
    release = threading.Event()
    provisioner = FakeProvisioner(release=release)
    config.PROVISIONING_TIMEOUT_SECONDS = 0.1
    try:
        outcome = ProvisioningSaga(db, provisioner, gateway, config).provision_tenant(descriptor, now=T0)
    finally:
        release.set()

    assert isinstance(outcome.resources, PlaceholderResources)
    assert "timed out" in outcome.resources.reason
    assert outcome.manager_invitation.status == InvitationStatus.INVITED


def test_same_manager_email_twice_conflicts(saga, db, provisioner, descriptor):
    saga.provision_tenant(descriptor, now=T0)
    again = descriptor.model_copy(update={"agency_name": "Another Agency"})

    with pytest.raises(ConflictError):
        saga.provision_tenant(again, now=T0 + hours(1))

    assert provisioner.calls == 1
    assert db.query(Tenant).count() == 1


def test_duplicate_agency_name_conflicts(saga, db, descriptor):
    saga.provision_tenant(descriptor, now=T0)
    again = descriptor.model_copy(update={"manager_email": "other@eliteproperties.co.ke"})

    with pytest.raises(ConflictError):
        saga.provision_tenant(again, now=T0)
    assert db.query(Tenant).count() == 1


def test_invitation_write_failure_rolls_back_tenant(saga, db, gateway, descriptor):
    with patch(
        "app.services.provisioning_saga.issue_invitation",
        side_effect=OperationalError("INSERT INTO invitations", {}, Exception("disk I/O error")),
    ):
        with pytest.raises(TransactionError):
            saga.provision_tenant(descriptor, now=T0)

    assert db.query(Tenant).count() == 0
    assert db.query(Invitation).count() == 0
    assert gateway.outbox == []


def test_storage_uniqueness_violation_is_conflict(saga, db, descriptor):
    with patch(
        "app.services.provisioning_saga.issue_invitation",
        side_effect=IntegrityError("INSERT INTO invitations", {}, Exception("UNIQUE constraint failed")),
    ):
        with pytest.raises(ConflictError):
            saga.provision_tenant(descriptor, now=T0)

    assert db.query(Tenant).count() == 0


def test_notification_failure_is_not_fatal(db, provisioner, config, descriptor):
    gateway = FakeGateway(config, fail=True)
    outcome = ProvisioningSaga(db, provisioner, gateway, config).provision_tenant(descriptor, now=T0)

    assert outcome.notification_sent is False
    assert outcome.notification_error == "simulated outage"
    assert db.query(Tenant).count() == 1
    assert crud.invitation.get_by_email(db, email=descriptor.manager_email) is not None
    assert db.query(NotificationLog).one().status == "failed"


@pytest.mark.parametrize("update", [
    {"agency_name": "   "},
    {"agency_name": "!!!"},
    {"manager_name": ""},
    {"billing_cycle": "weekly"},
    {"plan": "custom", "custom_price": None},
])
def test_invalid_descriptor_rejected_before_side_effects(saga, db, provisioner, descriptor, update):
    with pytest.raises(ValidationError):
        saga.provision_tenant(descriptor.model_copy(update=update), now=T0)
    assert provisioner.calls == 0
    assert db.query(Tenant).count() == 0


def test_custom_plan_billing(saga, descriptor):
    outcome = saga.provision_tenant(
        descriptor.model_copy(update={"plan": "custom", "custom_price": 250, "billing_cycle": "yearly"}),
        now=T0,
    )
    assert outcome.tenant.billing["monthly_price"] == 225.0
    assert outcome.tenant.billing["billing_cycle"] == "yearly"


@pytest.mark.parametrize("plan,cycle,custom,expected", [
    ("basic", "monthly", None, 49.0),
    ("standard", "quarterly", None, 94.05),
    ("standard", "yearly", None, 89.1),
    ("premium", "yearly", None, 179.1),
    ("enterprise", "quarterly", None, 379.05),
    ("custom", "monthly", 150.5, 150.5),
    ("mystery", "monthly", None, 99.0),
])
def test_calculate_monthly_price(plan, cycle, custom, expected):
    assert calculate_monthly_price(plan, cycle, custom) == expected
