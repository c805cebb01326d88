"""Shared request dependencies: the calling owner, transport and job session factory."""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.database import SessionFactory, async_session, get_session
from pix_gateway.models.transaction import Owner
from pix_gateway.providers.transport import OutboundTransport


async def get_owner(
    x_owner_id: str = Header(..., description="Id of the calling owner"),
    session: AsyncSession = Depends(get_session),
) -> Owner:
    owner = await session.get(Owner, x_owner_id)
    if not owner:
        raise HTTPException(status_code=401, detail=f"Unknown owner: {x_owner_id}")
    return owner


def get_transport() -> Optional[OutboundTransport]:
    """None lets each adapter open its own default transport."""
    return None


def get_session_factory() -> SessionFactory:
    """Factory background jobs open their sessions from."""
    return async_session
