"""Issue signed context ids for front-end clients."""

from fastapi import APIRouter, Depends, HTTPException, status

from agent_labs.factory import ServiceFactory
from agent_labs.adapters.rest.dependencies import get_factory
from agent_labs.adapters.rest.schemas import ContextIdBody, ContextIdOut

router = APIRouter(prefix="/api/context-ids", tags=["context"])


@router.post("", response_model=ContextIdOut)
async def create_context_id(
    body: ContextIdBody,
    factory: ServiceFactory = Depends(get_factory),
):
    """Return a fresh "username|timestamp" id and its signature.

    The client sends the signature back in X-Context-Signature.
    """
    signer = factory.create_context_signer()
    try:
        context_id, signature = signer.new_context_id(body.username)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ContextIdOut(context_id=context_id, signature=signature)
