import logging
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.account import Account
from domain.content import Content
from errors import NotFoundError, QueryError
from services.accounts import is_hash

logger = logging.getLogger('uvicorn.error')

CONTENT_COLUMNS = '''"content_items"."id", "content_items"."key", "content_items"."mime_type", "content_items"."data",
    "content_items"."title", "content_items"."score", "content_items"."submitted_at", "content_items"."submitted_by",
    "content_items"."updated_at", "content_items"."flags", "content_items"."metadata", "content_items"."path",
    "accounts"."handle"'''

CONTENT_FROM = '''from "content_items"
    left join "accounts" on "accounts"."id" = "content_items"."submitted_by"'''


class AncestorMode(str, Enum):
    PARENT = "p"
    OP = "op"

    @property
    def subltree_start(self) -> str:
        if self is AncestorMode.PARENT:
            return 'nlevel("cur"."path") - 1'
        return "0"


def content_from_row(row) -> Content:
    data = dict(row)
    if data.get("submitted_by") is None:
        data["submitted_by"] = 0
    try:
        return Content.model_validate(data)
    except ValidationError as e:
        raise QueryError(f"unable to map content row: {e}") from e


async def _fetch_all(db: AsyncSession, sel: str, params: dict) -> list:
    try:
        result = await db.execute(text(sel), params)
        return result.mappings().all()
    except SQLAlchemyError as e:
        raise QueryError(f"unable to load content: {e}") from e


async def load_items(db: AsyncSession, limit: int) -> list[Content]:
    """Top level feed, best scored and newest first."""
    sel = f'''select {CONTENT_COLUMNS} {CONTENT_FROM}
    order by "content_items"."score" desc, "content_items"."submitted_at" desc limit :limit'''
    rows = await _fetch_all(db, sel, {"limit": limit})
    return [content_from_row(row) for row in rows]


async def load_items_by_account(db: AsyncSession, account: Account) -> list[Content]:
    sel = f'''select {CONTENT_COLUMNS} {CONTENT_FROM}
    where "content_items"."submitted_by" = :account_id order by "content_items"."submitted_at" desc'''
    rows = await _fetch_all(db, sel, {"account_id": account.id})
    items = []
    for row in rows:
        item = content_from_row(row)
        item.submitted_by = account.id
        items.append(item)
    return items


async def load_item(db: AsyncSession, hash: str, day: Optional[date] = None, handle: Optional[str] = None) -> Content:
    """Load a single item by hash, optionally scoped to its submission day or submitter."""
    if not is_hash(hash):
        raise NotFoundError(f"item {hash!r} not found")

    where = ['"content_items"."key" like :key']
    params: dict = {"key": f"{hash.lower()}%"}
    if day is not None:
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        where.append('"content_items"."submitted_at" >= :start and "content_items"."submitted_at" < :end')
        params["start"] = start
        params["end"] = start + timedelta(days=1)
    if handle is not None:
        where.append('"accounts"."handle" = :handle')
        params["handle"] = handle

    sel = f'''select {CONTENT_COLUMNS} {CONTENT_FROM}
    where {" and ".join(where)} order by "content_items"."submitted_at" limit 1'''
    rows = await _fetch_all(db, sel, params)
    if not rows:
        raise NotFoundError(f"item {hash!r} not found")
    return content_from_row(rows[0])


async def load_descendants(db: AsyncSession, item: Content) -> list[Content]:
    """All replies below `item`, in tree order."""
    sel = f'''select {CONTENT_COLUMNS} {CONTENT_FROM}
    where "content_items"."path" <@ cast(:path as ltree)
    order by "content_items"."path", "content_items"."submitted_at"'''
    rows = await _fetch_all(db, sel, {"path": item.full_path})
    return [content_from_row(row) for row in rows]


async def load_ancestor(db: AsyncSession, hash: str, parent: str, mode: AncestorMode) -> Content:
    """
    Resolve the parent (mode p) or the root (mode op) of the item `hash`.

    The descendant's path is cut down to the wanted ancestor label and
    matched ancestor-or-self against the candidate's key, so `parent` only
    resolves when it really is that ancestor.
    """
    if not is_hash(hash) or not is_hash(parent):
        raise NotFoundError(f"item {parent!r} is not an ancestor of {hash!r}")

    sel = f'''select "par"."submitted_at", "par"."key" from "content_items" "par"
    inner join "content_items" "cur" on
        case when nlevel("cur"."path") > 0
            then subltree("cur"."path", {mode.subltree_start}, nlevel("cur"."path"))
        end <@ "par"."key"::ltree
    where "cur"."key" like :hash and "par"."key" like :parent
    limit 1'''
    rows = await _fetch_all(db, sel, {"hash": f"{hash.lower()}%", "parent": f"{parent.lower()}%"})
    if not rows:
        raise NotFoundError(f"item {parent!r} is not an ancestor of {hash!r}")
    return Content(key=rows[0]["key"], submitted_at=rows[0]["submitted_at"])
