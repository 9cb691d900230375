from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from digital_humans.core.database import get_db
from digital_humans.core.exceptions import NotFound
from digital_humans.services.digital_human_service import digital_human_service
from digital_humans.utils.response import success_response

router = APIRouter(prefix="/digital-humans", tags=["digital-humans"])

@router.get("/public")
async def list_public_digital_humans(
    limit: Optional[int] = Query(default=None, gt=0, le=200),
    db: Session = Depends(get_db),
):
    bots = digital_human_service.list_public(db, limit)
    return success_response(data=bots, message=f"{len(bots)} public digital humans")

@router.get("/{digital_human_id}")
async def get_digital_human(digital_human_id: str, db: Session = Depends(get_db)):
    bot = digital_human_service.get_by_id(db, digital_human_id)
    if bot is None:
        raise NotFound()
    return success_response(data=bot)
