import os
import threading
from datetime import datetime, timedelta, timezone

# Settings are read once at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_REMINDER_SCHEDULER"] = "false"
os.environ["OWNER_API_KEY"] = "test-owner-key"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SEND_EMAILS"] = "true"
os.environ["FRONTEND_URL"] = "https://app.leadestate.io"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import crud
from app.core.config import Settings
from app.db.database import Base
from app.models import Tenant, Invitation, InvitationRole  # noqa: F401 registers tables
from app.schemas.tenant import TenantProvisionRequest
from app.services.invitation_service import issue_invitation
from app.services.notification_gateway import NotificationGateway, SendResult
from app.services.resource_provisioner import ResourceProvisioner
from app.utils.slug import slugify

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FakeGateway(NotificationGateway):
    """Renders templates for real, records what would have been delivered."""

    def __init__(self, config=None, fail=False, fail_for=()):
        super().__init__(config)
        self.fail = fail
        self.fail_for = set(fail_for)
        self.outbox = []

    def _deliver(self, recipient, subject, html_content, text_content, tags):
        self.outbox.append({
            "template": tags[0],
            "recipient": recipient,
            "subject": subject,
            "text": text_content,
        })
        if self.fail or recipient in self.fail_for:
            return SendResult(success=False, error="simulated outage")
        return SendResult(success=True, message_id=f"<msg-{len(self.outbox)}@test>")

    def sent(self, template=None):
        return [m for m in self.outbox if template is None or m["template"] == template]


class FakeProvisioner(ResourceProvisioner):
    def __init__(self, error=None, release: threading.Event = None):
        self.error = error
        self.release = release
        self.calls = 0

    def provision(self, descriptor):
        self.calls += 1
        if self.release is not None:
            self.release.wait(5)
        if self.error is not None:
            raise self.error
        slug = slugify(descriptor.agency_name)
        return {
            "slug": slug,
            "repositories": {
                "frontend": {"name": f"{slug}-Frontend", "url": f"https://github.com/x/{slug}-Frontend",
                             "deploy_url": f"https://{slug}.leadestate.com"},
                "backend": {"name": f"{slug}-Backend", "url": f"https://github.com/x/{slug}-Backend",
                            "deploy_url": f"https://{slug}-api.leadestate.com"},
            },
            "database": {"name": f"{slug}_db", "user": f"{slug}_user", "host": "db", "port": 5432,
                         "url": "postgresql://..."},
            "deploy": {"frontend_url": f"https://{slug}.leadestate.com",
                       "backend_url": f"https://{slug}-api.leadestate.com"},
            "placeholder": False,
        }


@pytest.fixture
def config():
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        SEND_EMAILS=True,
        FRONTEND_URL="https://app.leadestate.io/",
        PROVISIONING_TIMEOUT_SECONDS=0.5,
        ENABLE_REMINDER_SCHEDULER=False,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway(config):
    return FakeGateway(config)


@pytest.fixture
def provisioner():
    return FakeProvisioner()


@pytest.fixture
def tenant(db):
    tenant = crud.tenant.create(db, obj_in={
        "name": "Elite Properties",
        "slug": "elite-properties",
        "contact_email": "owner@eliteproperties.co.ke",
        "plan": "standard",
    })
    db.commit()
    return tenant


@pytest.fixture
def make_invitation(db, tenant, config):
    def _make(email="agent@eliteproperties.co.ke", role=InvitationRole.MEMBER, issued_at=T0, full_name="Jane Wanjiku"):
        invitation = issue_invitation(
            db,
            email=email,
            full_name=full_name,
            role=role,
            tenant=tenant,
            invited_by="Platform Owner",
            now=issued_at,
            config=config,
        )
        db.commit()
        return invitation
    return _make


@pytest.fixture
def descriptor():
    return TenantProvisionRequest(
        agency_name="Elite Properties",
        manager_name="Sarah Johnson",
        manager_email="sarah@eliteproperties.co.ke",
        plan="standard",
        city="Nairobi",
    )


def hours(n):
    return timedelta(hours=n)
