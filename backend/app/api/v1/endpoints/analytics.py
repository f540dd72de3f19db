from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.services import analytics

router = APIRouter(prefix="/analytics")


@router.get("/overview")
def overview(db: Session = Depends(get_db)):
    return analytics.overview(db)


@router.get("/monthly-loss")
def monthly_loss(months: int = 6, db: Session = Depends(get_db)):
    return analytics.monthly_loss(db, months=months)


@router.get("/top-items")
def top_items(limit: int = 5, db: Session = Depends(get_db)):
    return analytics.top_items(db, limit=limit)


@router.get("/loss-rate")
def loss_rate(db: Session = Depends(get_db)):
    return analytics.loss_rate(db)
