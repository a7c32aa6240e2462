"""
Seed the database with demo accounts, companies and positions
Run: python seed_data.py   (after `alembic upgrade head`)
"""
import traceback

from devjobs.database import SessionLocal
from devjobs import models  # noqa: F401
from devjobs.models.user import User, UserRole
from devjobs.models.company import Company
from devjobs.models.position import Position, PositionStatus, ListingType, Seniority, RemoteType
from devjobs.models.technology import Technology
from devjobs.crud import user_crud, company_crud, position_crud, technology_crud, profile_crud

TECHNOLOGIES = ["Python", "FastAPI", "PostgreSQL", "React", "TypeScript", "Go", "Kubernetes", "Rust"]

HR_ACCOUNTS = [
    {
        "name": "Sarah Ahmed",
        "email": "hr@techcorp.dev",
        "company": "TechCorp",
        "description": "Building developer tooling for distributed teams.",
        "website": "https://techcorp.dev",
    },
    {
        "name": "Rafi Hasan",
        "email": "hr@cloudnine.dev",
        "company": "CloudNine",
        "description": "Managed infrastructure for fast-moving startups.",
        "website": "https://cloudnine.dev",
    },
]

DEVELOPERS = [
    {"name": "Nadia Karim", "email": "nadia@example.dev", "summary": "Backend engineer, 6 years of Python."},
    {"name": "Tanvir Islam", "email": "tanvir@example.dev", "summary": "Frontend developer who loves TypeScript."},
]

POSITIONS = [
    {
        "title": "Senior Python Engineer",
        "short_description": "Own our FastAPI services end to end.",
        "long_description": "You will design and run the APIs behind our product.",
        "seniority": Seniority.SENIOR,
        "salary_min": 90000,
        "salary_max": 130000,
        "listing_type": ListingType.TOP,
        "technologies": ["python", "fastapi", "postgresql"],
    },
    {
        "title": "Platform Engineer",
        "short_description": "Keep our Kubernetes clusters healthy.",
        "long_description": "Operate and automate the platform our customers run on.",
        "seniority": Seniority.MID,
        "salary_min": 70000,
        "salary_max": 100000,
        "remote_type": RemoteType.TIMEZONE,
        "location_restriction": "UTC+/-3",
        "listing_type": ListingType.FEATURED,
        "technologies": ["go", "kubernetes"],
    },
    {
        "title": "Frontend Developer",
        "short_description": "Ship polished React interfaces.",
        "long_description": "Work with design to build the dashboard our customers love.",
        "seniority": Seniority.JUNIOR,
        "listing_type": ListingType.REGULAR,
        "technologies": ["react", "typescript"],
    },
]


def clear(db):
    print("Clearing existing data...")
    db.query(Position).delete()
    db.query(Company).delete()
    db.query(Technology).delete()
    db.query(User).delete()
    db.commit()


def seed_database():
    db = SessionLocal()

    try:
        clear(db)

        print("Creating admin account...")
        admin = user_crud.create_user(
            db, name="Admin", email="admin@devjobs.dev", role=UserRole.ADMIN,
            password="admin12345", email_verified=True
        )

        print("Creating technologies...")
        technologies = {}
        for name in TECHNOLOGIES:
            technology = technology_crud.create_technology(db, name=name)
            technologies[technology.slug] = technology.id

        print("Creating HR accounts and companies...")
        companies = []
        for hr in HR_ACCOUNTS:
            user = user_crud.create_user(
                db, name=hr["name"], email=hr["email"], role=UserRole.HR,
                password="hr12345678", email_verified=True
            )
            companies.append(company_crud.setup_company(
                db, user, name=hr["company"], description=hr["description"], website=hr["website"]
            ))

        print("Creating developers...")
        for dev in DEVELOPERS:
            user = user_crud.create_user(
                db, name=dev["name"], email=dev["email"], role=UserRole.DEVELOPER,
                password="dev12345678", email_verified=True
            )
            profile_crud.update_developer_profile(db, user, summary=dev["summary"])

        print("Creating positions...")
        for index, data in enumerate(POSITIONS):
            data = dict(data)
            slugs = data.pop("technologies")
            position_crud.create_position(db, admin, {
                **data,
                "company_id": companies[index % len(companies)].id,
                "status": PositionStatus.PUBLISHED,
                "technology_ids": [technologies[slug] for slug in slugs],
            })

        print("\nDatabase seeded.")
        print("  admin@devjobs.dev / admin12345")
        for hr in HR_ACCOUNTS:
            print(f"  {hr['email']:24} / hr12345678  ({hr['company']})")
        for dev in DEVELOPERS:
            print(f"  {dev['email']:24} / dev12345678")
        print("\nDevelopers still need a CV before they can apply.")

    except Exception as e:
        print(f"Error: {e}")
        traceback.print_exc()
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
