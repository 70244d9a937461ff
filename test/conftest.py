"""Shared fixtures: in-memory app, signed-in client, request context"""
from datetime import date
import pytest
from portal import create_app, db
from portal.models import User
from portal.services import RequestContext
from portal.services import employees, ledger

ADMIN_EMAIL = 'admin@tecumseh.com'
ADMIN_PASSWORD = 'admin123'


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        admin = User(username='admin', email=ADMIN_EMAIL, role='admin', status=User.ACTIVE)
        admin.set_password(ADMIN_PASSWORD)
        db.session.add(admin)
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    response = client.post('/auth/login', json={'email': ADMIN_EMAIL, 'password': ADMIN_PASSWORD})
    assert response.get_json()['success'] is True
    return client


@pytest.fixture
def admin(app):
    return User.query.filter_by(email=ADMIN_EMAIL).first()


@pytest.fixture
def ctx(admin):
    return RequestContext(admin, '127.0.0.1', 'pytest')


@pytest.fixture
def employee(ctx):
    return employees.create_employee(ctx, 'E1', 'Asha Perera')


@pytest.fixture
def borrower(ctx, employee):
    borrower, _ = ledger.create_borrower(ctx, 'E1', 'Asha Perera', 1000, 200, 5, date(2025, 1, 15))
    return borrower
