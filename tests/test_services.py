from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from domain.account import Account, anonymous_account
from errors import NotFoundError, QueryError
from services import accounts, content, votes
from services.content import AncestorMode
from tests.conftest import ITEM_KEY, REPLY_KEY, mock_result

SUBMITTED = datetime(2018, 3, 4, 12, 30, tzinfo=timezone.utc)


def executed_sql(db) -> str:
    return str(db.execute.await_args.args[0])


def executed_params(db) -> dict:
    return db.execute.await_args.args[1]


class TestAncestor:
    @pytest.mark.asyncio
    async def test_parent_query(self, db):
        db.execute.return_value = mock_result([{"submitted_at": SUBMITTED, "key": ITEM_KEY}])
        ancestor = await content.load_ancestor(db, REPLY_KEY[:8], ITEM_KEY[:8], AncestorMode.PARENT)
        assert ancestor.key == ITEM_KEY
        assert ancestor.permalink == f"/2018/03/04/{ITEM_KEY[:8]}"
        sql = executed_sql(db)
        assert 'subltree("cur"."path", nlevel("cur"."path") - 1, nlevel("cur"."path"))' in sql
        assert '<@ "par"."key"::ltree' in sql
        assert executed_params(db) == {"hash": f"{REPLY_KEY[:8]}%", "parent": f"{ITEM_KEY[:8]}%"}

    @pytest.mark.asyncio
    async def test_root_query(self, db):
        db.execute.return_value = mock_result([{"submitted_at": SUBMITTED, "key": ITEM_KEY}])
        await content.load_ancestor(db, REPLY_KEY[:8], ITEM_KEY[:8], AncestorMode.OP)
        assert 'subltree("cur"."path", 0, nlevel("cur"."path"))' in executed_sql(db)

    @pytest.mark.asyncio
    async def test_missing_ancestor_is_not_found(self, db):
        with pytest.raises(NotFoundError):
            await content.load_ancestor(db, REPLY_KEY[:8], "ffffffff", AncestorMode.PARENT)

    @pytest.mark.asyncio
    async def test_malformed_hash_never_reaches_the_store(self, db):
        with pytest.raises(NotFoundError):
            await content.load_ancestor(db, "50%_off", ITEM_KEY[:8], AncestorMode.PARENT)
        db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_errors_become_query_errors(self, db):
        db.execute.side_effect = OperationalError("select", {}, Exception("connection refused"))
        with pytest.raises(QueryError):
            await content.load_ancestor(db, REPLY_KEY[:8], ITEM_KEY[:8], AncestorMode.PARENT)


class TestContent:
    @pytest.mark.asyncio
    async def test_load_items_maps_rows(self, db):
        db.execute.return_value = mock_result([
            {"id": 10, "key": ITEM_KEY, "mime_type": "application/url", "data": b"https://example.com/x",
             "title": "x", "score": 10, "submitted_at": SUBMITTED, "submitted_by": None, "updated_at": SUBMITTED,
             "flags": 0, "metadata": None, "path": "", "handle": None},
        ])
        items = await content.load_items(db, 200)
        assert len(items) == 1
        assert items[0].submitted_by == 0
        assert items[0].domain == "example.com"
        assert executed_params(db) == {"limit": 200}
        assert 'order by "content_items"."score" desc, "content_items"."submitted_at" desc' in executed_sql(db)

    @pytest.mark.asyncio
    async def test_items_by_account_get_the_submitter(self, db, account):
        db.execute.return_value = mock_result([
            {"id": 11, "key": REPLY_KEY, "mime_type": "text/plain", "data": b"hi", "title": "", "score": 0,
             "submitted_at": SUBMITTED, "submitted_by": None, "updated_at": SUBMITTED, "flags": 0,
             "metadata": None, "path": ITEM_KEY, "handle": "jdoe"},
        ])
        items = await content.load_items_by_account(db, account)
        assert items[0].submitted_by == account.id
        assert executed_params(db) == {"account_id": account.id}

    @pytest.mark.asyncio
    async def test_load_item_scoped_to_day(self, db, item):
        db.execute.return_value = mock_result([item.model_dump()])
        loaded = await content.load_item(db, item.hash, day=SUBMITTED.date())
        assert loaded.key == item.key
        params = executed_params(db)
        assert params["start"] == datetime(2018, 3, 4, tzinfo=timezone.utc)
        assert params["end"] == datetime(2018, 3, 5, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_load_item_missing(self, db):
        with pytest.raises(NotFoundError):
            await content.load_item(db, "abcdef12")

    @pytest.mark.asyncio
    async def test_descendants_use_the_full_path(self, db, reply):
        await content.load_descendants(db, reply)
        assert executed_params(db) == {"path": f"{ITEM_KEY}.{REPLY_KEY}"}
        assert '<@ cast(:path as ltree)' in executed_sql(db)


class TestAccounts:
    @pytest.mark.asyncio
    async def test_load_by_handle(self, db):
        db.execute.return_value = mock_result([
            {"id": 1, "key": "e" * 56, "handle": "jdoe", "email": None, "score": 0, "created_at": SUBMITTED,
             "updated_at": SUBMITTED, "metadata": '{"password": "x"}', "flags": 0},
        ])
        account = await accounts.load_account_by_handle(db, "jdoe")
        assert account.handle == "jdoe"
        assert account.metadata.password == "x"
        assert executed_params(db) == {"handle": "jdoe"}

    @pytest.mark.asyncio
    async def test_missing_handle(self, db):
        with pytest.raises(NotFoundError):
            await accounts.load_account_by_handle(db, "nobody")

    @pytest.mark.asyncio
    async def test_key_lookup_uses_a_lowercase_prefix(self, db):
        with pytest.raises(NotFoundError):
            await accounts.load_account_by_key(db, "E33C4FF5")
        assert executed_params(db) == {"key": "e33c4ff5%"}

    @pytest.mark.asyncio
    async def test_unmappable_row_is_a_query_error(self, db):
        db.execute.return_value = mock_result([
            {"id": 1, "key": "e" * 56, "handle": "jdoe", "email": None, "score": 0, "created_at": SUBMITTED,
             "updated_at": SUBMITTED, "metadata": "{not json", "flags": 0},
        ])
        with pytest.raises(QueryError):
            await accounts.load_account_by_handle(db, "jdoe")

    @pytest.mark.asyncio
    async def test_stored_key_is_kept_encoded(self, db):
        db.execute.return_value = mock_result([
            {"id": 1, "key": "e" * 56, "handle": "jdoe", "email": None, "score": 0, "created_at": SUBMITTED,
             "updated_at": SUBMITTED, "metadata": '{"key": {"public": "notbase64"}}', "flags": 0},
        ])
        account = await accounts.load_account_by_key(db, "eeeeeeee")
        assert account.public_key == "notbase64"


class TestVotes:
    @pytest.mark.asyncio
    async def test_anonymous_viewers_have_no_votes(self, db):
        assert await votes.load_votes(db, anonymous_account(), [1, 2]) == {}
        db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_items_no_query(self, db, account):
        assert await votes.load_votes(db, account, []) == {}
        db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_votes_keyed_by_item(self, db, account):
        db.execute.return_value = mock_result([
            {"id": 5, "weight": 1, "submitted_at": SUBMITTED, "updated_at": SUBMITTED, "flags": 0,
             "item_id": 10, "key": ITEM_KEY},
            {"id": 6, "weight": -1, "submitted_at": SUBMITTED, "updated_at": SUBMITTED, "flags": None,
             "item_id": 11, "key": REPLY_KEY},
        ])
        loaded = await votes.load_votes(db, account, [10, 11, 12])
        assert set(loaded) == {10, 11}
        assert loaded[10].is_up
        assert loaded[11].is_down
        assert loaded[10].item.hash == ITEM_KEY[:8]
        assert loaded[10].submitted_by is account
        assert executed_params(db) == {"account_id": account.id, "ids": [10, 11, 12]}
