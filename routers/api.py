import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from activitypub.ids import CollectionType, jsonld_context
from activitypub.objects import (
    ACTIVITY_JSON,
    actor_to_activitypub,
    create_activity,
    item_to_activitypub,
    like_activity,
    ordered_collection,
)
from activitypub.signatures import verify_http_signature
from config import settings
from database import get_db_session
from services import accounts, content, votes

logger = logging.getLogger('uvicorn.error')

router = APIRouter(
    prefix="/api",
    tags=["activitypub"],
    dependencies=[Depends(verify_http_signature)],
)


class ActivityJSONResponse(JSONResponse):
    media_type = ACTIVITY_JSON


@router.get("/accounts/{handle}", response_class=ActivityJSONResponse)
async def get_account(
    handle: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
):
    account = await accounts.load_account_by_handle(db, handle)
    return ActivityJSONResponse(actor_to_activitypub(account))


@router.get("/accounts/{handle}/outbox", response_class=ActivityJSONResponse)
async def get_account_outbox(
    handle: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
):
    account = await accounts.load_account_by_handle(db, handle)
    items = await content.load_items_by_account(db, account)
    for item in items:
        item.handle = account.handle
    return ActivityJSONResponse(
        ordered_collection(account, CollectionType.OUTBOX, [create_activity(item) for item in items])
    )


@router.get("/accounts/{handle}/outbox/{hash}", response_class=ActivityJSONResponse)
async def get_account_object(
    handle: str,
    hash: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
):
    item = await content.load_item(db, hash, handle=handle)
    obj = item_to_activitypub(item)
    obj["@context"] = jsonld_context()
    return ActivityJSONResponse(obj)


@router.get("/accounts/{handle}/liked", response_class=ActivityJSONResponse)
async def get_account_liked(
    handle: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
):
    account = await accounts.load_account_by_handle(db, handle)
    account_votes = await votes.load_votes_by_account(db, account, settings.MAX_CONTENT_ITEMS)
    likes = [like_activity(vote) for vote in account_votes if vote.is_up]
    return ActivityJSONResponse(ordered_collection(account, CollectionType.LIKED, likes))


@router.get("/outbox", response_class=ActivityJSONResponse)
async def get_outbox(
    db: Annotated[AsyncSession, Depends(get_db_session)],
):
    items = await content.load_items(db, settings.MAX_CONTENT_ITEMS)
    return ActivityJSONResponse(
        ordered_collection(None, CollectionType.OUTBOX, [create_activity(item) for item in items])
    )


@router.get("/outbox/{hash}", response_class=ActivityJSONResponse)
async def get_object(
    hash: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
):
    item = await content.load_item(db, hash)
    obj = item_to_activitypub(item)
    obj["@context"] = jsonld_context()
    return ActivityJSONResponse(obj)
