from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException

from ..errors import RoomNotFound
from ..schemas import RoomSummary
from ..state import registry

router = APIRouter(prefix="", tags=["rooms"])


@router.get("/categories", response_model=List[str])
async def list_categories():
    return registry.word_bank.categories()


@router.get("/rooms/{code}", response_model=RoomSummary, response_model_by_alias=True)
async def get_room(code: str):
    try:
        room = registry.get(code)
    except RoomNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    return room.summary()
