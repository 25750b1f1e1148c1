"""ActivityStreams JSON-LD representations of littr accounts, items and votes."""

import logging
from typing import Any, Dict, Optional

from activitypub.ids import (
    ActorLabel,
    ApiUrls,
    CollectionType,
    api_urls,
    build_actor_id,
    build_collection_id,
    build_key_id,
    build_object_id_from_item,
    build_object_id_from_vote,
    build_replies_collection_id,
    jsonld_context,
)
from activitypub.signatures import public_key_pem
from domain.account import Account
from domain.content import Content
from domain.formatting import format_date
from domain.vote import Vote
from errors import KeyParseError

logger = logging.getLogger('uvicorn.error')

ACTIVITY_JSON = "application/activity+json"


def actor_to_activitypub(account: Account, urls: Optional[ApiUrls] = None) -> Dict[str, Any]:
    """Return the Person object for an account."""
    urls = urls or api_urls()
    actor_id = build_actor_id(account, urls)
    obj = {
        "@context": jsonld_context(urls),
        "type": "Person",
        "id": actor_id,
        "preferredUsername": account.handle,
        "name": account.handle,
        "inbox": build_collection_id(account, CollectionType.INBOX, urls),
        "outbox": build_collection_id(account, CollectionType.OUTBOX, urls),
        "liked": build_collection_id(account, CollectionType.LIKED, urls),
        "score": account.score,
    }
    if account.created_at is not None:
        obj["published"] = format_date(account.created_at)
    if account.updated_at is not None:
        obj["updated"] = format_date(account.updated_at)
    if account.public_key:
        try:
            obj["publicKey"] = {
                "id": build_key_id(account, urls),
                "owner": actor_id,
                "publicKeyPem": public_key_pem(account.public_key),
            }
        except KeyParseError as e:
            logger.warning(f"Skipping unparseable public key for '{account.handle}': {e}")
    return obj


def item_to_activitypub(item: Content, urls: Optional[ApiUrls] = None) -> Dict[str, Any]:
    """Link posts become Pages, top level text posts Articles, replies Notes."""
    urls = urls or api_urls()
    object_id = build_object_id_from_item(item, urls=urls)
    if item.is_link:
        typ = "Page"
    elif item.is_top:
        typ = "Article"
    else:
        typ = "Note"

    obj: Dict[str, Any] = {
        "type": typ,
        "id": object_id,
        "mediaType": item.mime_type,
        "score": item.score,
        "url": f"{urls.instance}{item.permalink}" if item.permalink else None,
        "replies": build_replies_collection_id(object_id) if object_id else None,
    }
    if item.deleted:
        obj["type"] = "Tombstone"
        obj["formerType"] = typ
    else:
        if item.title:
            obj["name"] = item.title
        if item.link:
            obj["url"] = item.link
        elif not item.is_link:
            obj["content"] = item.text
    if item.handle:
        obj["attributedTo"] = build_actor_id(Account(handle=item.handle), urls)
    if item.submitted_at is not None:
        obj["published"] = format_date(item.submitted_at)
    if item.updated_at is not None:
        obj["updated"] = format_date(item.updated_at)
    if item.parent_hash:
        obj["inReplyTo"] = f"{urls.outbox}/{item.parent_hash}"
    return {k: v for k, v in obj.items() if v is not None}


def create_activity(item: Content, urls: Optional[ApiUrls] = None) -> Dict[str, Any]:
    urls = urls or api_urls()
    obj = item_to_activitypub(item, urls)
    activity = {
        "type": "Create",
        "id": f"{obj['id']}#create",
        "object": obj,
    }
    if "attributedTo" in obj:
        activity["actor"] = obj["attributedTo"]
    if "published" in obj:
        activity["published"] = obj["published"]
    return activity


def like_activity(vote: Vote, urls: Optional[ApiUrls] = None) -> Dict[str, Any]:
    urls = urls or api_urls()
    activity = {
        "type": "Like",
        "id": build_object_id_from_vote(vote, urls),
        "actor": build_actor_id(vote.submitted_by, urls) if vote.submitted_by else None,
        "object": build_object_id_from_item(vote.item, handle="", urls=urls) if vote.item else None,
    }
    if vote.submitted_at is not None:
        activity["published"] = format_date(vote.submitted_at)
    return {k: v for k, v in activity.items() if v is not None}


def ordered_collection(
    account: Optional[Account],
    label: CollectionType | ActorLabel,
    items: list[Dict[str, Any]],
    urls: Optional[ApiUrls] = None,
) -> Dict[str, Any]:
    urls = urls or api_urls()
    return {
        "@context": jsonld_context(urls),
        "type": "OrderedCollection",
        "id": build_collection_id(account, label, urls),
        "totalItems": len(items),
        "orderedItems": items,
    }
