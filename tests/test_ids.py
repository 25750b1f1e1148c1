from datetime import datetime, timezone

import pytest

from activitypub.ids import (
    ActorLabel,
    ApiUrls,
    CollectionType,
    build_actor_hash_id,
    build_actor_id,
    build_collection_id,
    build_key_id,
    build_object_id_from_item,
    build_object_id_from_vote,
    build_replies_collection_id,
    jsonld_context,
    last_segment,
)
from domain.account import Account
from domain.content import Content
from domain.vote import Vote
from tests.conftest import ACCOUNT_KEY, ITEM_KEY

URLS = ApiUrls(base="https://littr.example/api")


def test_urls():
    assert URLS.accounts == "https://littr.example/api/accounts"
    assert URLS.outbox == "https://littr.example/api/outbox"
    assert URLS.instance == "https://littr.example"


def test_default_urls_come_from_settings():
    assert build_actor_id(Account(handle="jdoe")) == "http://littr.test/api/accounts/jdoe"


def test_actor_ids(account):
    assert build_actor_id(account, URLS) == "https://littr.example/api/accounts/jdoe"
    assert build_actor_hash_id(account, URLS) == f"https://littr.example/api/accounts/{ACCOUNT_KEY[:8]}"
    assert build_key_id(account, URLS) == f"https://littr.example/api/accounts/{ACCOUNT_KEY[:8]}#main-key"


def test_actor_id_escapes_handle():
    assert build_actor_id(Account(handle="j doe/x"), URLS) == "https://littr.example/api/accounts/j%20doe%2Fx"


@pytest.mark.parametrize("label, expected", [
    (CollectionType.OUTBOX, "outbox"),
    (CollectionType.INBOX, "inbox"),
    (CollectionType.LIKED, "liked"),
    (ActorLabel(("John", "Johnny")), "John"),
])
def test_collection_ids(account, label, expected):
    assert build_collection_id(account, label, URLS) == f"https://littr.example/api/accounts/jdoe/{expected}"


def test_collection_id_without_handle():
    assert build_collection_id(Account(), CollectionType.OUTBOX, URLS) == "https://littr.example/api/outbox"
    assert build_collection_id(None, CollectionType.INBOX, URLS) == "https://littr.example/api/inbox"


def test_actor_label_without_names():
    assert ActorLabel().label == ""


def test_object_id_from_item(item):
    expected = f"https://littr.example/api/accounts/jdoe/outbox/{ITEM_KEY[:8]}"
    assert build_object_id_from_item(item, urls=URLS) == expected
    assert build_replies_collection_id(expected) == expected + "/replies"


def test_object_id_from_item_without_submitter(item):
    anonymous = item.model_copy(update={"handle": None})
    assert build_object_id_from_item(anonymous, urls=URLS) == f"https://littr.example/api/outbox/{ITEM_KEY[:8]}"


def test_object_id_from_item_without_hash():
    assert build_object_id_from_item(Content(handle="jdoe"), urls=URLS) is None


@pytest.mark.parametrize("weight", [1, -1])
def test_vote_ids_are_always_liked(account, item, weight):
    vote = Vote(submitted_by=account, item=item, weight=weight, submitted_at=datetime.now(timezone.utc))
    assert build_object_id_from_vote(vote, URLS) == f"https://littr.example/api/accounts/jdoe/liked/{ITEM_KEY[:8]}"


def test_ids_are_deterministic(account, item):
    assert build_actor_id(account, URLS) == build_actor_id(account.model_copy(), URLS)
    assert build_object_id_from_item(item, urls=URLS) == build_object_id_from_item(item.model_copy(), urls=URLS)


def test_last_segment():
    assert last_segment("http://littr.test/api/accounts/jdoe/outbox/a1b2c3d4") == "a1b2c3d4"
    assert last_segment("http://littr.test/api/accounts/e33c4ff5#main-key") == "e33c4ff5"
    assert last_segment("/api/accounts/e33c4ff5/") == "e33c4ff5"
    assert last_segment(None) == ""


def test_jsonld_context():
    ctx = jsonld_context(URLS)
    assert ctx[0] == "https://www.w3.org/ns/activitystreams"
    assert ctx[1] == "https://w3id.org/security/v1"
    assert ctx[2] == {"score": "https://littr.example/ns/#score"}
