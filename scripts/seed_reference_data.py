"""
Seed Reference Data and Admin User

Creates a starter set of counties, sub-counties, wards and institutions,
plus the first reviewer (admin) account. Safe to run more than once:
existing rows are left alone.

Usage:
    SEED_ADMIN_EMAIL=reviewer@example.org python scripts/seed_reference_data.py
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.database import async_session_maker, engine
from bursary.modules.reference.models import County, Institution, SubCounty, Ward
from bursary.modules.users.models import User, UserRole
from bursary.modules.users.repository import UserRepository

# county -> sub-county -> wards
LOCATIONS: dict[tuple[str, str], dict[str, list[str]]] = {
    ("Nairobi", "047"): {
        "Westlands": ["Kitisuru", "Parklands/Highridge", "Kangemi"],
        "Kibra": ["Laini Saba", "Makina", "Sarang'ombe"],
    },
    ("Kisumu", "042"): {
        "Kisumu Central": ["Market Milimani", "Kondele", "Nyalenda B"],
        "Nyando": ["Awasi/Onjiko", "Ahero", "Kabonyo/Kanyagwal"],
    },
    ("Mombasa", "001"): {
        "Mvita": ["Mji Wa Kale/Makadara", "Tudor", "Tononoka"],
    },
}

INSTITUTIONS: list[tuple[str, str]] = [
    ("University of Nairobi", "UNIVERSITY"),
    ("Maseno University", "UNIVERSITY"),
    ("Kenya Medical Training College", "COLLEGE"),
    ("Alliance High School", "HIGH_SCHOOL"),
]


async def seed_locations(db: AsyncSession) -> int:
    created = 0
    for (county_name, code), sub_counties in LOCATIONS.items():
        result = await db.execute(select(County).where(County.name == county_name))
        county = result.scalar_one_or_none()
        if county is not None:
            continue

        county = County(name=county_name, code=code)
        db.add(county)
        await db.flush()

        for sub_county_name, wards in sub_counties.items():
            sub_county = SubCounty(county_id=county.id, name=sub_county_name)
            db.add(sub_county)
            await db.flush()
            db.add_all(Ward(sub_county_id=sub_county.id, name=ward) for ward in wards)
        created += 1
    return created


async def seed_institutions(db: AsyncSession) -> int:
    created = 0
    for name, institution_type in INSTITUTIONS:
        result = await db.execute(select(Institution).where(Institution.name == name))
        if result.scalar_one_or_none() is None:
            db.add(Institution(name=name, institution_type=institution_type))
            created += 1
    return created


async def seed_admin(db: AsyncSession) -> None:
    email = os.getenv("SEED_ADMIN_EMAIL")
    if not email:
        print("SEED_ADMIN_EMAIL not set, skipping admin user")
        return

    existing_user = await UserRepository.get_by_email(db, email)
    if existing_user:
        print(f"Admin already exists: {email}")
        print(f"  ID: {existing_user.id}")
        print(f"  Role: {existing_user.role.value}")
        return

    admin_user = User(
        email=email,
        first_name=os.getenv("SEED_ADMIN_FIRST_NAME", "Bursary"),
        last_name=os.getenv("SEED_ADMIN_LAST_NAME", "Reviewer"),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db.add(admin_user)
    await db.flush()

    print("Admin created successfully!")
    print(f"  Email: {email}")
    print(f"  ID: {admin_user.id}")


async def seed() -> None:
    async with async_session_maker() as db:
        counties = await seed_locations(db)
        institutions = await seed_institutions(db)
        await seed_admin(db)
        await db.commit()

    print(f"Seeded {counties} counties and {institutions} institutions")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
