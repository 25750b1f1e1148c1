import logging

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.account import Account
from domain.content import Content
from domain.vote import Vote
from errors import QueryError

logger = logging.getLogger('uvicorn.error')

VOTES_FOR_ITEMS = text('''select "votes"."id", "votes"."weight", "votes"."submitted_at", "votes"."updated_at",
        "votes"."flags", "votes"."item_id", "content_items"."key"
    from "votes"
        inner join "content_items" on "content_items"."id" = "votes"."item_id"
    where "votes"."submitted_by" = :account_id and "votes"."item_id" in :ids''').bindparams(
    bindparam("ids", expanding=True)
)

VOTES_BY_ACCOUNT = text('''select "votes"."id", "votes"."weight", "votes"."submitted_at", "votes"."updated_at",
        "votes"."flags", "votes"."item_id", "content_items"."key"
    from "votes"
        inner join "content_items" on "content_items"."id" = "votes"."item_id"
    where "votes"."submitted_by" = :account_id
    order by "votes"."submitted_at" desc limit :limit''')


def vote_from_row(row, account: Account) -> Vote:
    return Vote(
        id=row["id"],
        weight=row["weight"],
        submitted_at=row["submitted_at"],
        updated_at=row["updated_at"],
        flags=row["flags"] or 0,
        submitted_by=account,
        item=Content(id=row["item_id"], key=row["key"]),
    )


async def load_votes(db: AsyncSession, account: Account, item_ids: list[int]) -> dict[int, Vote]:
    """Batch load the votes `account` cast on the items, keyed by item id."""
    if account.is_anonymous or account.id == 0 or not item_ids:
        return {}
    try:
        result = await db.execute(VOTES_FOR_ITEMS, {"account_id": account.id, "ids": list(item_ids)})
        rows = result.mappings().all()
    except SQLAlchemyError as e:
        raise QueryError(f"unable to load votes: {e}") from e

    votes = {}
    for row in rows:
        vote = vote_from_row(row, account)
        votes[vote.item.id] = vote
    logger.debug(f"loaded {len(votes)} votes for {account.handle}")
    return votes


async def load_votes_by_account(db: AsyncSession, account: Account, limit: int) -> list[Vote]:
    try:
        result = await db.execute(VOTES_BY_ACCOUNT, {"account_id": account.id, "limit": limit})
        rows = result.mappings().all()
    except SQLAlchemyError as e:
        raise QueryError(f"unable to load votes: {e}") from e
    return [vote_from_row(row, account) for row in rows]
