"""History ledger endpoints."""

from fastapi import APIRouter, Depends

from app.db import training_state as ts
from app.db.store import ScopedStore
from app.routes.deps import get_store
from app.services import history_ledger
from app.services.reports import chart_series

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("")
async def get_history(store: ScopedStore = Depends(get_store)):
    history = await ts.load_history(store)
    last = history_ledger.latest(history)
    previous = history_ledger.previous_pai(history)
    return {
        "history": history,
        "count": len(history),
        "latest": last,
        "previous_pai": previous,
        "pai_trend": history_ledger.pai_trend(last.pai if last else None, previous),
    }


@router.get("/chart")
async def get_history_chart(store: ScopedStore = Depends(get_store)):
    return chart_series(await ts.load_history(store))
