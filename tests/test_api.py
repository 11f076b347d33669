from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.core import deps
from app.db.database import get_db
from app.main import app
from app.models.invitation import Invitation, InvitationRole
from app.utils.time_utils import utcnow
from conftest import FakeGateway, FakeProvisioner

OWNER = {"X-Owner-Api-Key": "test-owner-key"}

PROVISION_BODY = {
    "agency_name": "Elite Properties",
    "manager_name": "Sarah Johnson",
    "manager_email": "sarah@eliteproperties.co.ke",
    "plan": "premium",
    "billing_cycle": "quarterly",
}


@pytest.fixture
def api_gateway():
    return FakeGateway()


@pytest.fixture
def client(session_factory, api_gateway):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_gateway] = lambda: api_gateway
    app.dependency_overrides[deps.get_resource_provisioner] = lambda: FakeProvisioner()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _token_for(db, email):
    return db.query(Invitation).filter(Invitation.email == email).one().token


def _provision(client):
    response = client.post("/api/v1/tenants/provision", json=PROVISION_BODY, headers=OWNER)
    assert response.status_code == 201, response.text
    return response.json()


def _activate(client, db, email="sarah@eliteproperties.co.ke"):
    response = client.post("/api/v1/account-setup/complete", json={
        "token": _token_for(db, email),
        "password": "s3cure-pass",
        "first_name": "Sarah",
        "last_name": "Johnson",
    })
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_provision_requires_owner_key(client):
    assert client.post("/api/v1/tenants/provision", json=PROVISION_BODY).status_code == 401
    bad = client.post("/api/v1/tenants/provision", json=PROVISION_BODY, headers={"X-Owner-Api-Key": "nope"})
    assert bad.status_code == 401


def test_provision_tenant(client, api_gateway):
    data = _provision(client)

    assert data["success"] is True
    assert data["placeholder"] is False
    assert data["notification_sent"] is True
    assert data["tenant"]["slug"] == "elite-properties"
    assert data["tenant"]["billing"]["monthly_price"] == 189.05
    assert data["manager_invitation"]["role"] == "administrator"
    assert data["manager_invitation"]["status"] == "invited"
    assert "token" not in data["manager_invitation"]
    assert len(api_gateway.sent("manager_invitation")) == 1


def test_provision_conflict_uses_error_envelope(client):
    _provision(client)
    response = client.post("/api/v1/tenants/provision", json=PROVISION_BODY, headers=OWNER)

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "conflict"
    assert body["message"]


def test_setup_flow(client, db):
    _provision(client)
    token = _token_for(db, "sarah@eliteproperties.co.ke")

    verify = client.get("/api/v1/account-setup/verify-token", params={"token": token})
    assert verify.status_code == 200
    assert verify.json()["full_name"] == "Sarah Johnson"
    assert verify.json()["tenant_name"] == "Elite Properties"

    response = client.post("/api/v1/account-setup/complete", json={
        "token": token, "password": "s3cure-pass", "first_name": "Sarah",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["invitation"]["status"] == "active"
    assert body["access_token"]
    assert body["welcome_email_sent"] is True

    again = client.post("/api/v1/account-setup/complete", json={
        "token": token, "password": "s3cure-pass", "first_name": "Sarah",
    })
    assert again.status_code == 409


def test_verify_unknown_token(client):
    response = client.get("/api/v1/account-setup/verify-token", params={"token": "nope"})
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_short_password_is_400(client, db):
    _provision(client)
    response = client.post("/api/v1/account-setup/complete", json={
        "token": _token_for(db, "sarah@eliteproperties.co.ke"), "password": "short", "first_name": "Sarah",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_expired_token_is_410_and_can_be_resent(client, db, make_invitation):
    invitation = make_invitation(role=InvitationRole.ADMINISTRATOR, issued_at=utcnow() - timedelta(hours=49))

    response = client.get("/api/v1/account-setup/verify-token", params={"token": invitation.token})
    assert response.status_code == 410
    assert response.json()["error"] == "expired"

    resent = client.post("/api/v1/account-setup/resend-invitation", json={"email": invitation.email})
    assert resent.status_code == 200
    assert resent.json()["invitation"]["token_generation"] == 2
    assert resent.json()["email_sent"] is True

    db.expire_all()
    fresh = client.get("/api/v1/account-setup/verify-token", params={"token": _token_for(db, invitation.email)})
    assert fresh.status_code == 200


def test_resend_invitation_unknown_email(client):
    response = client.post("/api/v1/account-setup/resend-invitation", json={"email": "ghost@eliteproperties.co.ke"})
    assert response.status_code == 404


def test_manager_invites_and_manages_team(client, db, api_gateway):
    provisioned = _provision(client)
    tenant_id = provisioned["tenant"]["id"]
    access_token = _activate(client, db)["access_token"]
    auth = {"Authorization": f"Bearer {access_token}"}

    created = client.post("/api/v1/invitations/", json={
        "email": "peter@eliteproperties.co.ke",
        "full_name": "Peter Otieno",
        "role": "member",
        "tenant_id": tenant_id,
    }, headers=auth)
    assert created.status_code == 201, created.text
    invitation = created.json()["invitation"]
    assert invitation["invited_by"] == "Sarah Johnson"
    assert len(api_gateway.sent("member_invitation")) == 1

    pending = client.get("/api/v1/invitations/pending", headers=auth)
    assert pending.status_code == 200
    assert [(p["email"], p["invitation_status"]) for p in pending.json()] == [
        ("peter@eliteproperties.co.ke", "pending")
    ]

    resent = client.post(f"/api/v1/invitations/{invitation['id']}/resend", headers=auth)
    assert resent.status_code == 200
    assert resent.json()["invitation"]["token_generation"] == 2

    cancelled = client.post(f"/api/v1/invitations/{invitation['id']}/cancel", headers=auth)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    again = client.post(f"/api/v1/invitations/{invitation['id']}/cancel", headers=auth)
    assert again.status_code == 409


def test_invitations_require_credentials(client):
    assert client.get("/api/v1/invitations/pending").status_code == 401


def test_manager_cannot_invite_into_another_agency(client, db):
    _provision(client)
    access_token = _activate(client, db)["access_token"]

    response = client.post("/api/v1/invitations/", json={
        "email": "peter@eliteproperties.co.ke",
        "full_name": "Peter Otieno",
        "tenant_id": 999,
    }, headers={"Authorization": f"Bearer {access_token}"})
    assert response.status_code == 403


def test_owner_can_invite_with_explicit_inviter(client, tenant):
    response = client.post("/api/v1/invitations/", json={
        "email": "grace@eliteproperties.co.ke",
        "full_name": "Grace Muthoni",
        "role": "senior_member",
        "tenant_id": tenant.id,
        "invited_by": "Support Team",
    }, headers=OWNER)
    assert response.status_code == 201
    assert response.json()["invitation"]["invited_by"] == "Support Team"


def test_manual_reminder_run(client, make_invitation):
    make_invitation(issued_at=utcnow() - timedelta(hours=25))

    assert client.post("/api/v1/reminders/run").status_code == 401

    response = client.post("/api/v1/reminders/run", headers=OWNER)
    assert response.status_code == 200
    assert response.json() == {"sent": 1, "failed": 0, "skipped": 0, "total_checked": 1}
