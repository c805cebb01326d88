"""
Seed the database with sandbox providers and demo owners.

Creates:
  - SubadqA and SubadqB provider rows pointing at their sandbox mock servers
  - 3 owners: two routed through SubadqA, one through SubadqB
  - 1 owner with no provider configured (creation fails with PROVIDER_NOT_FOUND)

Run:
    python -m seed.seed_data
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from pix_gateway.database import async_session, init_db
from pix_gateway.models.transaction import Owner, Provider

MOCK_RESPONSE_HEADER = "x-mock-response-name"

PROVIDERS = [
    {
        "name": "SubadqA",
        "base_url": "https://0acdeaee-1729-4d55-80eb-d54a125e5e18.mock.pstmn.io",
        "config": {
            "headers": {"Content-Type": "application/json"},
            "mock_response_header": MOCK_RESPONSE_HEADER,
        },
        "active": True,
    },
    {
        "name": "SubadqB",
        "base_url": "https://ef8513c8-fd99-4081-8963-573cd135e133.mock.pstmn.io",
        "config": {
            "headers": {"Content-Type": "application/json"},
            "mock_response_header": MOCK_RESPONSE_HEADER,
            "seller_id": "SELLER-DEMO-001",
        },
        "active": True,
    },
]

# provider is the provider name, resolved to its id when seeding
OWNERS = [
    {"id": "owner-a", "name": "Usuário A", "provider": "SubadqA"},
    {"id": "owner-b", "name": "Usuário B", "provider": "SubadqA"},
    {"id": "owner-c", "name": "Usuário C", "provider": "SubadqB"},
    {"id": "owner-unrouted", "name": "Usuário sem subadquirente", "provider": None},
]


async def seed():
    """Seed the database with sample data."""
    await init_db()

    async with async_session() as session:
        # Check if already seeded
        existing = await session.execute(select(Provider).where(Provider.name == "SubadqA"))
        if existing.scalars().first():
            print("Database already seeded. Skipping.")
            return

        providers = {}
        for provider_data in PROVIDERS:
            provider = Provider(**provider_data)
            session.add(provider)
            providers[provider.name] = provider
        await session.flush()

        for owner_data in OWNERS:
            provider = providers.get(owner_data["provider"])
            session.add(Owner(
                id=owner_data["id"],
                name=owner_data["name"],
                provider_id=provider.id if provider else None,
            ))

        await session.commit()
        print(f"Seeded {len(PROVIDERS)} providers and {len(OWNERS)} owners.")


if __name__ == "__main__":
    asyncio.run(seed())
