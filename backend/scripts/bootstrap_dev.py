"""
Dev bootstrap script — create an admin profile and API key for local
development.

Usage:
    python -m scripts.bootstrap_dev [email] [user-id]

This will:
  1. Create the tables if they don't exist (local SQLite convenience)
  2. Create an administrator profile for `email` (default admin@localhost)
     under `user-id`, which should be the identity provider's id for that
     account so signing in later finds this profile
  3. Generate an API key and print the raw key ONCE (it is never stored)

Normally profiles are provisioned on first sign-in through the identity
provider; this skips that step so the lookup routes can be tried with
curl straight away.
"""

import asyncio
import sys
import uuid

# Ensure the project root is on the path
sys.path.insert(0, ".")

from sqlalchemy import select

from postcode_api.auth.hashing import generate_api_key
from postcode_api.core.config import settings
from postcode_api.core.database import Database
from postcode_api.models.profile import Profile


async def main(email: str, user_id: uuid.UUID) -> None:
    database = Database(settings.DATABASE_URL)
    if settings.DATABASE_URL.startswith("sqlite"):
        await database.create_all()

    issued = generate_api_key()

    async with database.session_factory() as session:
        result = await session.execute(select(Profile).where(Profile.email == email))
        profile = result.scalar_one_or_none()

        # ── Create or reuse the profile ─────────────────────
        if profile is None:
            profile = Profile(
                id=user_id,
                email=email,
                full_name="Dev Admin",
                rate_limit=settings.DEFAULT_RATE_LIMIT,
                allowed_domains=[],
            )
            session.add(profile)

        # ── Rotate the API key ──────────────────────────────
        profile.is_admin = True
        profile.api_key_hash = issued.digest
        profile.api_key_prefix = issued.prefix
        profile.key_generated_at = issued.generated_at
        await session.commit()

    # ── Print results ───────────────────────────────────────
    print()
    print("=" * 60)
    print("  Dev Bootstrap Complete")
    print("=" * 60)
    print()
    print(f"  Profile:    {profile.email}")
    print(f"  Profile ID: {profile.id}")
    print()
    print(f"  API Key:    {issued.raw}")
    print()
    print("  Try it:")
    print(f"    curl -H 'X-API-Key: {issued.raw}' http://localhost:8000/api/postcodes/SW1A1AA")
    print()
    print("  ⚠  Copy this key now — it will NEVER be shown again.")
    print("=" * 60)
    print()

    await database.dispose()


if __name__ == "__main__":
    email = sys.argv[1] if len(sys.argv) > 1 else "admin@localhost"
    user_id = uuid.UUID(sys.argv[2]) if len(sys.argv) > 2 else uuid.uuid4()
    asyncio.run(main(email, user_id))
