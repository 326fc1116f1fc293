#!/usr/bin/env python3
"""Create (or update) a user and print an access token for it.

Usage:
    python scripts/create_user.py --email cashier@fieldbook.id --name "Front Desk" --role cashier
    python scripts/create_user.py --email op@fieldbook.id --name Operator --role operator --seed-field
"""

import argparse
import asyncio
from datetime import time

from sqlalchemy import select

from fieldbook.core.permissions import UserRole
from fieldbook.core.security import create_user_token
from fieldbook.database import close_db, get_db_context
from fieldbook.models import Field, User


async def create_user(email: str, name: str, role: str, seed_field: bool) -> None:
    """Create the user if missing, otherwise update name and role."""
    async with get_db_context() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user:
            user.name = name
            user.role = role
            user.is_active = True
            print(f"Updated existing user: {email} ({role})")
        else:
            user = User(email=email, name=name, role=role, is_active=True)
            session.add(user)
            print(f"Created user: {email} ({role})")
        await session.flush()

        if seed_field:
            field = Field(
                name="Futsal A",
                type="futsal",
                location="Hall 1",
                price_per_hour=50000,
                opening_time=time(8, 0),
                closing_time=time(23, 0),
                status="active",
            )
            session.add(field)
            await session.flush()
            print(f"Created field #{field.id}: {field.name}")

        token = create_user_token(user.id, user.email, user.role)

    await close_db()
    print(f"\nAccess token:\n{token}")


def main():
    parser = argparse.ArgumentParser(description="Create a FieldBook user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--role", default="customer", choices=[r.value for r in UserRole])
    parser.add_argument("--seed-field", action="store_true", help="Also create a demo field")
    args = parser.parse_args()

    asyncio.run(create_user(args.email, args.name, args.role, args.seed_field))


if __name__ == "__main__":
    main()
