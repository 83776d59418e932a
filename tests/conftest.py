import os
import sqlite3
import uuid
from datetime import UTC, datetime

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.db import Base

load_dotenv(os.path.join(os.getcwd(), ".env"))

# Register UUID adapter for SQLite - store as string
sqlite3.register_adapter(uuid.UUID, lambda u: str(u))


# Monkey-patch SQLAlchemy's UUID type for SQLite compatibility
# This must happen before any models are imported
from sqlalchemy.sql import sqltypes  # noqa: E402

_original_uuid_bind_processor = sqltypes.Uuid.bind_processor
_original_uuid_result_processor = sqltypes.Uuid.result_processor


def _sqlite_uuid_bind_processor(self, dialect):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return str(value)
                return str(uuid.UUID(value)) if value else None
            return None
        return process
    return _original_uuid_bind_processor(self, dialect)


def _sqlite_uuid_result_processor(self, dialect, coltype):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return value
                return uuid.UUID(value) if value else None
            return None
        return process
    return _original_uuid_result_processor(self, dialect, coltype)


sqltypes.Uuid.bind_processor = _sqlite_uuid_bind_processor
sqltypes.Uuid.result_processor = _sqlite_uuid_result_processor

from app.models import CustomerUserRole  # noqa: E402
from app.schemas.shipping import LeadCreate  # noqa: E402
from app.schemas.tenant import CustomerCreate, CustomerUserCreate  # noqa: E402
from app.services import customers as customer_service  # noqa: E402
from app.services import leads as lead_service  # noqa: E402

JUNE_2025 = datetime(2025, 6, 10, 15, 30, tzinfo=UTC)


def _resolve_test_database_url() -> str | None:
    def _running_in_container() -> bool:
        return os.path.exists("/.dockerenv") or os.getenv("RUNNING_IN_DOCKER") == "1"

    raw_url = os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not raw_url:
        return None

    url = make_url(raw_url)
    if url.drivername.startswith("postgresql"):
        if url.database != "shipping_crm_test":
            url = url.set(database="shipping_crm_test")
        if url.host == "db" and not _running_in_container():
            url = url.set(host="localhost")
        return url.render_as_string(hide_password=False)

    return raw_url


@pytest.fixture(scope="session")
def engine():
    database_url = _resolve_test_database_url()
    if database_url:
        # Use PostgreSQL for tests (recommended)
        engine = create_engine(database_url)
    else:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        # pysqlite only supports SAVEPOINT when SQLAlchemy emits BEGIN itself.
        @event.listens_for(engine, "connect")
        def _configure_sqlite(dbapi_connection, _connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_sqlite(conn):
            conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)

    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    # Service commits release a SAVEPOINT; the outer transaction is discarded.
    session = Session(
        bind=connection,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


def _unique_domain() -> str:
    return f"broker-{uuid.uuid4().hex[:12]}.example.com"


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex}@example.com"


def make_customer(db, name="Acme Auto Transport"):
    return customer_service.customers.create(
        db,
        CustomerCreate(
            name=name,
            domain=_unique_domain(),
            admin_name="Dana Admin",
            admin_email=_unique_email(),
        ),
    )


def make_user(db, customer, first_name="Sam", last_name="Agent", role=CustomerUserRole.user):
    return customer_service.customer_users.create(
        db,
        customer.id,
        CustomerUserCreate(
            email=_unique_email(),
            first_name=first_name,
            last_name=last_name,
            role=role,
        ),
    )


def lead_payload(**overrides) -> LeadCreate:
    data = {
        "contact_name": "Jordan Shipper",
        "contact_phone": "555-0100",
        "contact_email": "jordan@example.com",
        "vehicle_year": "2021",
        "vehicle_make": "Toyota",
        "vehicle_model": "Camry",
        "origin": "Dallas, TX",
        "origin_zipcode": "75201",
        "destination": "Miami, FL",
        "destination_zipcode": "33101",
        "pickup_date": datetime(2025, 6, 20, tzinfo=UTC),
        "delivery_date": datetime(2025, 6, 25, tzinfo=UTC),
    }
    data.update(overrides)
    return LeadCreate(**data)


@pytest.fixture()
def customer(db_session):
    return make_customer(db_session)


@pytest.fixture()
def other_customer(db_session):
    return make_customer(db_session, name="Other Brokerage")


@pytest.fixture()
def agent(db_session, customer):
    return make_user(db_session, customer)


@pytest.fixture()
def make_lead(db_session, customer):
    def _make_lead(created_at=JUNE_2025, customer_obj=None, **overrides):
        owner = customer_obj or customer
        return lead_service.leads.create(db_session, owner.id, lead_payload(**overrides), created_at=created_at)

    return _make_lead


@pytest.fixture()
def lead(make_lead):
    return make_lead()


@pytest.fixture()
def make_agent(db_session, customer):
    def _make_agent(first_name="Sam", last_name="Agent", role=CustomerUserRole.user, customer_obj=None):
        return make_user(db_session, customer_obj or customer, first_name, last_name, role)

    return _make_agent
