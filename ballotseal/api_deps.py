"""
BALLOTSEAL — API Dependencies.
Shared dependencies for FastAPI routes.
"""

from __future__ import annotations

from fastapi import Header, HTTPException, Request

from ballotseal.engine import BallotSealEngine


def get_engine(request: Request) -> BallotSealEngine:
    """Inject the engine from app state."""
    return request.app.state.engine


async def get_user_id(
    x_user_id: str = Header(None, description="Authenticated user id, set by the auth gateway"),
) -> str:
    """Caller identity as forwarded by the upstream authentication layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()
