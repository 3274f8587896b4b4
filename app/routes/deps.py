"""Shared request dependencies: role scope, store and session registry."""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from app.db.database import get_db
from app.db.store import ScopedStore
from app.services.training_session import SessionRegistry, TrainingSession

VALID_ROLES = ("student", "teacher")


async def get_role(x_role: Optional[str] = Header(None)) -> Optional[str]:
    """Role from the X-Role header; absent means the unscoped keys."""
    if x_role is None or x_role == "":
        return None
    if x_role not in VALID_ROLES:
        raise HTTPException(status_code=400, detail=f"X-Role must be one of {', '.join(VALID_ROLES)}")
    return x_role


async def get_store(db=Depends(get_db), role: Optional[str] = Depends(get_role)) -> ScopedStore:
    return ScopedStore(db, role)


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> TrainingSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session
