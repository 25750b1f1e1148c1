import logging
from typing import Annotated, Optional

import bcrypt
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from domain.account import Account, anonymous_account
from errors import NotFoundError
from services.accounts import load_account_by_handle

logger = logging.getLogger('uvicorn.error')

SESSION_HANDLE_KEY = "handle"


def verify_password(plain_password, hashed_password):
    if not plain_password or not hashed_password:
        return False
    return bcrypt.checkpw(
        bytes(plain_password, encoding="utf-8"),
        bytes(hashed_password, encoding="utf-8"),
    )


async def authenticate_account(db: AsyncSession, handle: str, password: str) -> Optional[Account]:
    try:
        account = await load_account_by_handle(db, handle)
    except NotFoundError:
        return None
    if account.deleted or not verify_password(password, account.metadata.password):
        return None
    return account


def login(request: Request, account: Account):
    request.session[SESSION_HANDLE_KEY] = account.handle
    logger.info(f"Account '{account.handle}' logged in")


def logout(request: Request):
    handle = request.session.pop(SESSION_HANDLE_KEY, None)
    if handle:
        logger.info(f"Account '{handle}' logged out")


async def get_current_account(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Account:
    """The account stored in the cookie session, or the anonymous one."""
    handle = request.session.get(SESSION_HANDLE_KEY)
    if not handle:
        return anonymous_account()
    try:
        return await load_account_by_handle(db, handle)
    except NotFoundError:
        logger.warning(f"Session references missing account '{handle}', dropping it")
        request.session.pop(SESSION_HANDLE_KEY, None)
        return anonymous_account()
