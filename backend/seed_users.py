"""
Database seeding script for initial users.

Creates ADMIN and SUPERADMIN users for development and prints bearer
tokens for them. Run this script after the database is set up.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.core.jwt import create_access_token
from backend.app.services.code_generator import user_code_generator
from sqlalchemy import select

SEED_USERS = [
    ("Admin User", "admin@tracker.local", UserRole.ADMIN),
    ("Super Admin", "superadmin@tracker.local", UserRole.SUPERADMIN),
]


async def seed_users():
    """
    Seed initial users with admin roles.
    
    Existing emails are skipped, so the script can be re-run safely.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with AsyncSessionLocal() as db:
        print("Starting user seeding...")
        
        seeded = []
        for name, email, role in SEED_USERS:
            existing = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
            if existing:
                print(f"{role.value} user {email} already exists, skipping")
                seeded.append(existing)
                continue
            
            user = User(
                name=name,
                email=email,
                role=role,
                unique_code=await user_code_generator(db).generate(),
            )
            db.add(user)
            await db.flush()
            seeded.append(user)
            print(f"Created {role.value} user {email} (code {user.unique_code})")
        
        await db.commit()
        
        print("\nDevelopment tokens:")
        for user in seeded:
            token = create_access_token({"sub": user.email, "user_id": user.id, "role": user.role.value})
            print(f"  {user.role.value:<10} {token}")


if __name__ == "__main__":
    asyncio.run(seed_users())
