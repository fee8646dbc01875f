"""
Pytest fixtures for the back-office tests.

Provides an in-memory database, a test client, staff accounts with live
session tokens and a small product catalog.
"""

import pytest

from comptoir import create_app
from comptoir.extensions import db
from comptoir.models import Product, User
from comptoir.services import auth_service, session_service
from comptoir.services.broadcast import broadcaster
from comptoir.services.cache import cache
from comptoir.services.webhook_service import notifier


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'NOTIFIER_ASYNC': False,
        'SALES_WEBHOOK_URL': None,
        'WEEKLY_WEBHOOK_URL': None,
        'WEBHOOK_URL': None,
        'WEBHOOK_ENABLED': False,
        'EVENTS_KEEPALIVE_SECONDS': 0.01,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app, monkeypatch):
    """Fresh tables, cache and notifier state for each test."""
    # Cheap hashes keep the suite fast
    monkeypatch.setattr(auth_service, "BCRYPT_ROUNDS", 4)

    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        cache.clear()
        notifier.delivered = 0
        notifier.failed = 0

        yield db.session

        db.session.rollback()
        notifier.transport = None


@pytest.fixture
def admin(db_session):
    return auth_service.create_user("patron", PASSWORD, role="admin", grade="Patron")


@pytest.fixture
def employee(db_session):
    return auth_service.create_user("alice", PASSWORD, role="employe", grade="Novice")


@pytest.fixture
def other_employee(db_session):
    return auth_service.create_user("bob", PASSWORD, role="employe", grade="Confirmé")


@pytest.fixture
def admin_headers(admin):
    _, token = session_service.create_session(admin)
    return auth_headers(token)


@pytest.fixture
def employee_headers(employee):
    _, token = session_service.create_session(employee)
    return auth_headers(token)


@pytest.fixture
def burger(db_session):
    """Plain product: price 10, cost 4, five on hand."""
    product = Product(name="Burger", category="Plats", price=10.0, corporate_price=8.0, cost=4.0, stock=5)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def menu(db_session):
    """Bundle-category product earning free units."""
    product = Product(name="Menu Classique", category="Menus", price=20.0, cost=8.0, stock=20)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def subscription():
    """A broadcaster queue that is unsubscribed after the test."""
    q = broadcaster.subscribe()
    yield q
    broadcaster.unsubscribe(q)


def drain_events(q) -> list:
    events = []
    while not q.empty():
        events.append(q.get_nowait()["type"])
    return events


def reload(instance):
    """Re-read a row after a write that bypassed the ORM identity map."""
    db.session.expire_all()
    return db.session.get(type(instance), instance.id)


def auth_headers(token: str) -> dict:
    """Helper to create session headers."""
    return {'x-auth-token': token}


def make_user(username: str, *, role: str = "employe", grade: str = "Novice") -> User:
    return auth_service.create_user(username, PASSWORD, role=role, grade=grade)
