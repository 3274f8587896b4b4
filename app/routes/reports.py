"""Report endpoints: latest session, student profile and class dashboard."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.db import training_state as ts
from app.db.store import ScopedStore
from app.routes.deps import get_store
from app.services.reports import (
    ClassSummary,
    RosterEntry,
    SessionReport,
    StudentReport,
    build_session_report,
    build_student_report,
    summarize_class,
)

router = APIRouter(prefix="/api/reports", tags=["reports"])


class ClassRosterRequest(BaseModel):
    students: list[RosterEntry] = []


@router.get("/session", response_model=SessionReport)
async def session_report(store: ScopedStore = Depends(get_store)):
    history = await ts.load_history(store)
    marker = await ts.load_weak_marker(store)
    profile = await ts.load_profile(store)
    return build_session_report(history, marker, profile.name if profile else None)


@router.get("/student", response_model=StudentReport)
async def student_report(store: ScopedStore = Depends(get_store)):
    profile = await ts.load_profile(store)
    if profile is None:
        raise HTTPException(status_code=404, detail="No student profile")
    marker = await ts.load_weak_marker(store)
    return build_student_report(profile, marker)


@router.post("/class", response_model=ClassSummary)
async def class_dashboard(body: ClassRosterRequest):
    return summarize_class(body.students)
