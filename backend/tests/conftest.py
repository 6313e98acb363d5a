# backend/tests/conftest.py
"""
Pytest configuration for the GlamUp backend.

Every test runs against a fresh in-memory SQLite database. Emails go to the
console provider and the Resend client is patched so nothing leaves the
process.
"""

import os

# Set testing mode BEFORE any glamup imports
os.environ["is_testing"] = "true"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["NOTIFICATIONS_ENABLED"] = "true"
os.environ["TEST_DATABASE_URL"] = "sqlite://"

import unittest.mock

# Guard against real emails in any test
global_resend_mock = unittest.mock.patch("resend.Emails.send")
mocked_send = global_resend_mock.start()
mocked_send.return_value = {"id": "test-email-id", "status": "sent"}

from datetime import date, time, timedelta
from decimal import Decimal
from typing import Callable, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session, sessionmaker

from glamup.api.dependencies import get_db
from glamup.core.actor import Actor
from glamup.core.config import settings
from glamup.core.enums import BusinessStatus, ClientModel
from glamup.database import Base, create_db_engine
from glamup.main import app
import glamup.models  # noqa: F401
from glamup.models.business import Business, TeamMember
from glamup.models.catalog import Category, Package, Service
from glamup.models.client import Client, RegisteredClient
from glamup.schemas.appointment import ActorIn, AppointmentCreate
from glamup.services.appointment_query_service import AppointmentQueryService
from glamup.services.booking_service import BookingService
from glamup.services.cancellation_service import CancellationService
from glamup.services.notification_service import NotificationService
from glamup.services.reschedule_service import RescheduleService

settings.is_testing = True

test_engine = create_db_engine("sqlite://")
TestSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
)

OWNER_ID = "01HOWNER00000000000000000A"


@pytest.fixture
def db():
    """
    Create a new database session for each test.

    Tables are created before and dropped after, so tests never share rows.
    """
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db: Session):
    """Create a test client bound to the test session."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def booking_day() -> date:
    """A day comfortably in the future so nothing is tagged Past."""
    return date.today() + timedelta(days=14)


@pytest.fixture
def business(db: Session) -> Business:
    business = Business(
        owner_id=OWNER_ID,
        name="Velvet Salon",
        email="owner@velvet.example",
        phone="+91 98000 00000",
        address="12 MG Road, Bengaluru",
        status=BusinessStatus.ACTIVE.value,
    )
    db.add(business)
    db.commit()
    return business


@pytest.fixture
def other_business(db: Session) -> Business:
    business = Business(
        owner_id="01HOWNER00000000000000000B",
        name="Rival Studio",
        email="owner@rival.example",
        status=BusinessStatus.ACTIVE.value,
    )
    db.add(business)
    db.commit()
    return business


@pytest.fixture
def team_member(db: Session, business: Business) -> TeamMember:
    member = TeamMember(business_id=business.id, name="Asha", email="asha@velvet.example")
    db.add(member)
    db.commit()
    return member


@pytest.fixture
def second_team_member(db: Session, business: Business) -> TeamMember:
    member = TeamMember(business_id=business.id, name="Ravi", email="ravi@velvet.example")
    db.add(member)
    db.commit()
    return member


@pytest.fixture
def registered_client(db: Session) -> RegisteredClient:
    customer = RegisteredClient(name="Meera", email="meera@example.com")
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def walk_in_client(db: Session, business: Business) -> Client:
    customer = Client(business_id=business.id, name="Kiran", email="kiran@example.com")
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def category(db: Session, business: Business) -> Category:
    hair = Category(business_id=business.id, name="Hair")
    db.add(hair)
    db.commit()
    return hair


@pytest.fixture
def haircut(db: Session, business: Business, category: Category) -> Service:
    service = Service(
        business_id=business.id,
        category_id=category.id,
        name="Haircut",
        duration=30,
        price=Decimal("500.00"),
    )
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def blow_dry(db: Session, business: Business, category: Category) -> Service:
    service = Service(
        business_id=business.id,
        category_id=category.id,
        name="Blow Dry",
        duration=15,
        price=Decimal("250.00"),
    )
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def spa_package(db: Session, business: Business, haircut: Service, blow_dry: Service) -> Package:
    package = Package(
        business_id=business.id,
        category_id=haircut.category_id,
        name="Hair Day",
        duration=60,
        price=Decimal("750.00"),
        discount=Decimal("100.00"),
        final_price=Decimal("650.00"),
        services=[haircut.snapshot(), blow_dry.snapshot()],
    )
    db.add(package)
    db.commit()
    return package


@pytest.fixture
def make_request(
    business: Business,
    team_member: TeamMember,
    registered_client: RegisteredClient,
    haircut: Service,
    booking_day: date,
) -> Callable[..., AppointmentCreate]:
    """Build an AppointmentCreate with sensible defaults; override any field."""

    def _make(
        start: str = "10:00",
        end: Optional[str] = None,
        actor: Optional[Actor] = None,
        **overrides,
    ) -> AppointmentCreate:
        actor = actor or Actor.business(OWNER_ID)
        hours, minutes = (int(part) for part in start.split(":"))
        data = {
            "business_id": business.id,
            "client_id": registered_client.id,
            "client_model": ClientModel.REGISTERED_CLIENT,
            "team_member_id": team_member.id,
            "service_ids": [haircut.id],
            "date": booking_day,
            "start_time": time(hours, minutes),
            "actor": ActorIn(kind=actor.kind, id=actor.id),
        }
        if end is not None:
            end_hours, end_minutes = (int(part) for part in end.split(":"))
            data["end_time"] = time(end_hours, end_minutes)
        data.update(overrides)
        return AppointmentCreate(**data)

    return _make


@pytest.fixture
def business_actor() -> Actor:
    return Actor.business(OWNER_ID)


@pytest.fixture
def client_actor(registered_client: RegisteredClient) -> Actor:
    return Actor.client(registered_client.id)


@pytest.fixture
def notification_spy() -> unittest.mock.MagicMock:
    """Stands in for NotificationService so service tests can assert on calls."""
    return unittest.mock.MagicMock(spec=NotificationService)


@pytest.fixture
def booking_service(db: Session, notification_spy) -> BookingService:
    return BookingService(db, notification_service=notification_spy)


@pytest.fixture
def reschedule_service(db: Session, notification_spy) -> RescheduleService:
    return RescheduleService(db, notification_service=notification_spy)


@pytest.fixture
def cancellation_service(db: Session, notification_spy) -> CancellationService:
    return CancellationService(db, notification_service=notification_spy)


@pytest.fixture
def query_service(db: Session) -> AppointmentQueryService:
    return AppointmentQueryService(db)


@pytest.fixture
def book(booking_service: BookingService, make_request):
    """Create an appointment pair; accepts the same arguments as make_request."""

    def _book(
        start: str = "10:00",
        end: Optional[str] = None,
        actor: Optional[Actor] = None,
        **overrides,
    ):
        request = make_request(start, end, actor, **overrides)
        return booking_service.create_booking(request, request.actor.to_actor())

    return _book
