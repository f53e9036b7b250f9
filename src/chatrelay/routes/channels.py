import logging

from air.responses import JSONResponse
from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from fastapi import Request
from fastapi import status

from chatrelay.errors import PersistenceError
from chatrelay.store import MessageStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["channels"])


def get_store(request: Request) -> MessageStore:
    return request.app.state.store


@router.get("/channel")
def get_channel_messages(
    channel_id: int = Query(..., alias="id"),
    store: MessageStore = Depends(get_store),
):
    """All stored messages for a channel, oldest first."""
    try:
        messages = store.query_by_channel(channel_id)
    except PersistenceError as e:
        logger.error("Query failed for channel %s: %s", channel_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Query failed"
        ) from e

    return JSONResponse([m.model_dump(by_alias=True) for m in messages])
