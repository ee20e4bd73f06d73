
from fastapi import APIRouter, HTTPException
from ..core.adapter_base import AbstractPhysicalAdapter
from ..core.adapter_manager import manager
from ..core.errors import LifecycleError, PublishError
from ..core.schemas import (
    ActionRequest,
    ActionResult,
    AdapterInfo,
    CapabilityDescriptor,
    RelationshipInstance,
    RelationshipInstanceRequest,
)

router = APIRouter(prefix='/adapters', tags=['adapters'])

def _adapter(adapter_id: str) -> AbstractPhysicalAdapter:
    adapter = manager.get(adapter_id)
    if not adapter:
        raise HTTPException(status_code=404, detail='adapter not found')
    return adapter

@router.get('', response_model=list[AdapterInfo])
async def list_adapters():
    return manager.list()

@router.get('/{adapter_id}/capabilities', response_model=CapabilityDescriptor)
async def capabilities(adapter_id: str):
    descriptor = _adapter(adapter_id).capabilities.peek()
    if not descriptor:
        raise HTTPException(status_code=404, detail='capabilities not announced yet')
    return descriptor

@router.post('/{adapter_id}/actions', response_model=ActionResult)
def incoming_action(adapter_id: str, request: ActionRequest):
    accepted = _adapter(adapter_id).on_incoming_action(request)
    return ActionResult(key=request.key, accepted=accepted)

@router.post('/{adapter_id}/relationships', response_model=RelationshipInstance)
def create_relationship(adapter_id: str, body: RelationshipInstanceRequest):
    adapter = _adapter(adapter_id)
    try:
        return adapter.create_relationship_instance(body.target, body.metadata)
    except LifecycleError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PublishError as e:
        raise HTTPException(status_code=502, detail=str(e))
