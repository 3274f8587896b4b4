"""Weak-topic review endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator

from app.db import training_state as ts
from app.db.store import ScopedStore
from app.routes.deps import get_store
from app.services import review
from app.services.question_bank import get_question_pool

router = APIRouter(prefix="/api/review", tags=["review"])


class ReviewSubmission(BaseModel):
    total: int = Field(ge=0)
    correct: int = Field(ge=0)

    @model_validator(mode="after")
    def _correct_within_total(self):
        if self.correct > self.total:
            raise ValueError("correct cannot exceed total")
        return self


@router.get("")
async def get_review(store: ScopedStore = Depends(get_store)):
    aggregate = await ts.load_last_aggregate(store)
    topic, questions = review.review_questions(get_question_pool(), aggregate)
    return {
        "weak_topic": topic,
        "questions": [q.public() for q in questions],
        "answers": {str(q.id): q.correct for q in questions},
    }


@router.post("/results")
async def submit_review(body: ReviewSubmission, store: ScopedStore = Depends(get_store)):
    result = await review.record_review(store, body.total, body.correct)
    aggregate = await ts.load_last_aggregate(store)
    return {"result": result, "retrain": review.retrain_settings(aggregate)}


@router.get("/results")
async def list_review_results(store: ScopedStore = Depends(get_store)):
    return {"results": await ts.load_review_results(store)}
