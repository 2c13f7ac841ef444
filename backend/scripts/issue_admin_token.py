"""
Issue an admin access token for the /admin endpoints.

The profile must exist and have role "admin". Run from the backend/ directory:
    python scripts/issue_admin_token.py <profile_id> [ttl_minutes]
"""
import asyncio
import os
import sys

# Add backend/ to path so we can import config
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from database import async_session, init_db
from db_models import Profile
from middleware.auth import issue_access_token


async def main(profile_id: str, ttl_minutes: int | None) -> int:
    await init_db()
    async with async_session() as db:
        profile = await db.get(Profile, profile_id)

    if profile is None:
        print(f"❌ Profile not found: {profile_id}")
        return 1
    if profile.role != "admin":
        print(f"❌ Profile {profile_id} has role '{profile.role}', not 'admin'")
        return 1

    token = issue_access_token(subject=profile.id, role="admin", ttl_minutes=ttl_minutes)
    print(f"✅ Admin token for {profile.email or profile.id}:")
    print(token)
    return 0


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print(__doc__)
        sys.exit(2)
    ttl = int(sys.argv[2]) if len(sys.argv) == 3 else None
    sys.exit(asyncio.run(main(sys.argv[1], ttl)))
