
from typing import Optional
from fastapi import APIRouter, Query
from ..core.adapter_manager import manager
from ..core.schemas import BusMessage, EventsResponse

router = APIRouter(prefix='/events', tags=['events'])

@router.get('', response_model=EventsResponse)
async def history(limit: int = Query(100, ge=0), topic: Optional[str] = None, after: int = 0):
    entries = manager.bus.history(limit=limit, pattern=topic, after_seq=after)
    return EventsResponse(messages=[BusMessage(**e) for e in entries])
