import logging
import re
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.account import Account
from errors import NotFoundError, QueryError

logger = logging.getLogger('uvicorn.error')

HASH_RE = re.compile(r"^[0-9a-fA-F]{1,64}$")

ACCOUNT_COLUMNS = '''"accounts"."id", "accounts"."key", "accounts"."handle", "accounts"."email", "accounts"."score",
    "accounts"."created_at", "accounts"."updated_at", "accounts"."metadata", "accounts"."flags"'''


def is_hash(value: str) -> bool:
    return bool(value) and HASH_RE.match(value) is not None


def account_from_row(row) -> Account:
    try:
        return Account.model_validate(dict(row))
    except ValidationError as e:
        raise QueryError(f"unable to map account row: {e}") from e


async def _fetch_one(db: AsyncSession, sel: str, params: dict) -> Optional[Account]:
    try:
        result = await db.execute(text(sel), params)
        rows = result.mappings().all()
    except SQLAlchemyError as e:
        raise QueryError(f"unable to load account: {e}") from e
    if not rows:
        return None
    return account_from_row(rows[0])


async def load_account_by_handle(db: AsyncSession, handle: str) -> Account:
    sel = f'select {ACCOUNT_COLUMNS} from "accounts" where "handle" = :handle'
    account = await _fetch_one(db, sel, {"handle": handle})
    if account is None:
        raise NotFoundError(f"user {handle!r} not found")
    return account


async def load_account_by_key(db: AsyncSession, key_hash: str) -> Account:
    """Load an account by its key or a prefix of it."""
    if not is_hash(key_hash):
        raise NotFoundError(f"account {key_hash!r} not found")
    sel = f'select {ACCOUNT_COLUMNS} from "accounts" where "key" like :key order by "id" limit 1'
    account = await _fetch_one(db, sel, {"key": f"{key_hash.lower()}%"})
    if account is None:
        raise NotFoundError(f"account {key_hash!r} not found")
    return account
