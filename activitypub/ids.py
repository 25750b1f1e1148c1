"""
Canonical ActivityPub identifiers.

Every id is derived from the api base URL and account handles or content
hashes, nothing is stored.
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional, Sequence, Union
from urllib.parse import quote, urlparse

from config import settings
from domain.account import Account
from domain.content import Content
from domain.vote import Vote

AS_CONTEXT = "https://www.w3.org/ns/activitystreams"
SECURITY_CONTEXT = "https://w3id.org/security/v1"
KEY_FRAGMENT = "main-key"


def escape(value: str) -> str:
    """Escape a single path segment."""
    return quote(value, safe="")


@dataclass(frozen=True)
class ApiUrls:
    base: str

    @property
    def accounts(self) -> str:
        return f"{self.base}/accounts"

    @property
    def outbox(self) -> str:
        return f"{self.base}/outbox"

    @property
    def instance(self) -> str:
        """Instance root, the api base without its /api suffix."""
        return self.base[: -len("/api")] if self.base.endswith("/api") else self.base


@lru_cache
def api_urls() -> ApiUrls:
    return ApiUrls(base=settings.api_base_url)


class CollectionType(str, Enum):
    OUTBOX = "outbox"
    INBOX = "inbox"
    LIKED = "liked"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class ActorLabel:
    """Labels an actor collection by the actor's first display name."""
    names: Sequence[str] = ()

    @property
    def label(self) -> str:
        for name in self.names:
            return name
        return ""


Label = Union[CollectionType, ActorLabel]


def build_actor_id(account: Account, urls: Optional[ApiUrls] = None) -> str:
    urls = urls or api_urls()
    return f"{urls.accounts}/{escape(account.handle)}"


def build_actor_hash_id(account: Account, urls: Optional[ApiUrls] = None) -> str:
    urls = urls or api_urls()
    return f"{urls.accounts}/{escape(account.hash)}"


def build_key_id(account: Account, urls: Optional[ApiUrls] = None) -> str:
    return f"{build_actor_hash_id(account, urls)}#{KEY_FRAGMENT}"


def build_collection_id(account: Optional[Account], label: Optional[Label], urls: Optional[ApiUrls] = None) -> str:
    urls = urls or api_urls()
    text = label.label if label is not None else ""
    if account is not None and account.handle:
        return f"{urls.accounts}/{escape(account.handle)}/{text}"
    return f"{urls.base}/{text}"


def build_replies_collection_id(object_id: str) -> str:
    return f"{object_id}/replies"


def build_object_id_from_item(item: Content, handle: Optional[str] = None, urls: Optional[ApiUrls] = None) -> Optional[str]:
    """
    Id of a content item: under its submitter's outbox when the submitter
    is known, under the instance outbox otherwise. None when the item has
    no hash yet.
    """
    urls = urls or api_urls()
    if not item.hash:
        return None
    handle = handle if handle is not None else item.handle
    if handle:
        return f"{urls.accounts}/{escape(handle)}/outbox/{escape(item.hash)}"
    return f"{urls.outbox}/{escape(item.hash)}"


def build_object_id_from_vote(vote: Vote, urls: Optional[ApiUrls] = None) -> str:
    urls = urls or api_urls()
    # downvotes are not federated, every published vote is a like
    relation = CollectionType.LIKED.label
    handle = vote.submitted_by.handle if vote.submitted_by else ""
    item_hash = vote.item.hash if vote.item else ""
    return f"{urls.accounts}/{escape(handle)}/{relation}/{escape(item_hash)}"


def last_segment(iri: Optional[str]) -> str:
    if not iri:
        return ""
    path = urlparse(iri).path if "://" in iri else iri
    return path.rstrip("/").split("/")[-1]


def jsonld_context(urls: Optional[ApiUrls] = None) -> list:
    urls = urls or api_urls()
    return [
        AS_CONTEXT,
        SECURITY_CONTEXT,
        {"score": f"{urls.instance}/ns/#score"},
    ]
