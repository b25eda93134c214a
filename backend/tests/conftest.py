"""
Pytest fixtures for orderdesk backend tests.

Provides test database setup, users/organizations/catalog fixtures and a
logged-in test client helper.
"""

import itertools

import pytest

from orderdesk import create_app
from orderdesk.extensions import db
from orderdesk.models import Customer, Membership, Product, ProductPrice, User
from orderdesk.models.tenancy import ROLE_OWNER, STATUS_ACTIVE
from orderdesk.services import membership_service
from orderdesk.services.auth_service import hash_password
from orderdesk.services.mail_service import OUTBOX_KEY
from orderdesk.services.membership_service import OrgContext
from orderdesk.time_utils import utcnow


PASSWORD = "Password123!"

_phone_seq = itertools.count(1000)


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    upload_dir = tmp_path_factory.mktemp("uploads")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'MAIL_BACKEND': 'memory',
        'UPLOAD_FOLDER': str(upload_dir),
        'FRONTEND_URL': 'http://frontend.test',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions[OUTBOX_KEY] = []

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(db_session, username: str, email: str | None = None) -> User:
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        full_name=username.title(),
        password_hash=hash_password(PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


def add_membership(db_session, user: User, org, role: str) -> Membership:
    membership = Membership(user_id=user.id, organization_id=org.id, role=role, status=STATUS_ACTIVE)
    db_session.add(membership)
    db_session.commit()
    return membership


def make_product(db_session, org, owner, *, name="Widget", price=100.0, quantity=10,
                 discount_percent=0.0, category="Tools", supplier=None) -> Product:
    product = Product(
        organization_id=org.id,
        owner_user_id=owner.id,
        name=name,
        description=f"{name} description",
        category=category,
        supplier=supplier,
        quantity=quantity,
        discount_percent=discount_percent,
        cover_img="/uploads/cover.png",
        photos=[],
    )
    product.prices.append(ProductPrice(price=price, date=utcnow()))
    db_session.add(product)
    db_session.commit()
    return product


def make_customer(db_session, org, owner, *, first_name="Jane", last_name="Doe",
                  email=None, phone=None, company=None) -> Customer:
    tag = first_name.lower()
    customer = Customer(
        organization_id=org.id,
        owner_user_id=owner.id,
        first_name=first_name,
        last_name=last_name,
        email=email or f"{tag}@customer.test",
        phone_number=phone or f"555-{next(_phone_seq)}",
        company_name=company,
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def owner(db_session):
    """User who creates the Acme organization."""
    return make_user(db_session, "owner")


@pytest.fixture(scope='function')
def member(db_session):
    return make_user(db_session, "member")


@pytest.fixture(scope='function')
def outsider(db_session):
    """User with no membership anywhere."""
    return make_user(db_session, "outsider")


@pytest.fixture(scope='function')
def org(db_session, owner):
    """Organization A: Acme, owned by `owner`."""
    return membership_service.create_organization(user_id=owner.id, name="Acme", slug="acme")


@pytest.fixture(scope='function')
def other_org(db_session, outsider):
    """Organization B, unrelated tenant owned by `outsider`."""
    return membership_service.create_organization(user_id=outsider.id, name="Beta", slug="beta")


@pytest.fixture(scope='function')
def owner_ctx(owner, org):
    return OrgContext(actor_id=owner.id, organization_id=org.id, role=ROLE_OWNER)


@pytest.fixture(scope='function')
def widget(db_session, org, owner):
    """Widget: price 100, stock 10, 10% product discount."""
    return make_product(db_session, org, owner, name="Widget", price=100.0, quantity=10, discount_percent=10.0)


@pytest.fixture(scope='function')
def customer(db_session, org, owner):
    return make_customer(db_session, org, owner, first_name="Jane", last_name="Doe", company="Doe Industries")


def get_auth_token(client, username: str, password: str = PASSWORD) -> str | None:
    """Helper to get auth token for a user."""
    response = client.post('/api/v1/users/login', json={
        'username': username,
        'password': password,
    })
    if response.status_code == 200:
        return response.json['data']['accessToken']
    return None


def auth_headers(token: str, organization_id: int | None = None) -> dict:
    """Helper to create Authorization (and organization) headers."""
    headers = {'Authorization': f'Bearer {token}'}
    if organization_id is not None:
        headers['X-Organization-Id'] = str(organization_id)
    return headers
