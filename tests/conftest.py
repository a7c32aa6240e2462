import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("APP_ENV", "testing")
os.environ.pop("SMTP_EMAIL", None)

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from devjobs import models  # noqa: E402,F401
from devjobs.database import Base, get_db  # noqa: E402
from devjobs.main import app  # noqa: E402
from devjobs.models.user import User, UserRole  # noqa: E402
from devjobs.models.developer_profile import DeveloperProfile  # noqa: E402
from devjobs.models.company import Company, CompanyMember, CompanyMemberRole  # noqa: E402
from devjobs.models.position import Position, PositionStatus, ListingType  # noqa: E402
from devjobs.services.notifications import NotificationDispatcher, get_notifier  # noqa: E402
from devjobs.utils.dates import utcnow  # noqa: E402
from devjobs.utils.security import hash_password, create_access_token  # noqa: E402

PASSWORD = "password123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    yield session
    session.close()


@pytest.fixture
def notifier(db):
    return NotificationDispatcher(db, mail_enabled=False)


@pytest.fixture
def client(db, notifier):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ----------------- Factories -----------------

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def factory(role=UserRole.DEVELOPER, name=None, email=None, password=PASSWORD, verified=True):
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            hashed_password=hash_password(password) if password else None,
            role=role,
            email_verified_at=utcnow() if verified else None
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture
def auth_headers():
    def headers(user):
        return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}
    return headers


@pytest.fixture
def make_company(db):
    counter = {"n": 0}

    def factory(owner=None, name=None, description="We build things.", role=CompanyMemberRole.ADMIN):
        counter["n"] += 1
        name = name or f"Company {counter['n']}"
        company = Company(
            name=name,
            slug=name.lower().replace(" ", "-"),
            description=description,
            social_links={},
            created_by_user_id=owner.id if owner else None
        )
        db.add(company)
        db.flush()
        if owner:
            db.add(CompanyMember(company_id=company.id, user_id=owner.id, role=role, joined_at=utcnow()))
        db.commit()
        db.refresh(company)
        if owner:
            db.refresh(owner)
        return company

    return factory


@pytest.fixture
def make_position(db):
    counter = {"n": 0}

    def factory(company, creator=None, status=PositionStatus.PUBLISHED, expires_in=None,
                listing_type=ListingType.REGULAR, paid=False, **fields):
        counter["n"] += 1
        now = utcnow()
        position = Position(
            company_id=company.id,
            created_by_user_id=creator.id if creator else None,
            title=fields.pop("title", f"Position {counter['n']}"),
            slug=fields.pop("slug", f"position-{counter['n']}"),
            short_description=fields.pop("short_description", "Short"),
            long_description=fields.pop("long_description", "Long description"),
            status=status,
            listing_type=listing_type,
            published_at=now if status != PositionStatus.DRAFT else None,
            expires_at=now + expires_in if expires_in is not None else None,
            paid_at=now if paid else None,
            **fields
        )
        db.add(position)
        db.commit()
        db.refresh(position)
        return position

    return factory


@pytest.fixture
def developer(db, make_user):
    """Developer with a complete profile (summary and CV)"""
    user = make_user(UserRole.DEVELOPER, name="Dev Eloper", email="dev@example.com")
    db.add(DeveloperProfile(user_id=user.id, summary="I write Python.", cv_path="devjobs/cvs/dev-cv", other_links=[]))
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def hr_user(make_user, make_company):
    """HR user whose company profile is complete"""
    user = make_user(UserRole.HR, name="Hannah Recruiter", email="hr@example.com")
    make_company(owner=user, name="Acme")
    return user


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, name="Site Admin", email="admin@example.com")


@pytest.fixture
def days():
    return lambda n: timedelta(days=n)
