import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from jinja2 import TemplateError
from sqlalchemy.ext.asyncio import AsyncSession

import AuthAndAccount as auth
from config import settings
from database import get_db_session
from domain.account import Account
from domain.content import get_all_ids
from errors import AuthenticationError, NotFoundError, RenderError
from services import accounts, content, votes
from services.content import AncestorMode
from templating import templates

logger = logging.getLogger('uvicorn.error')

router = APIRouter(tags=["frontend"])


def render(request: Request, name: str, context: dict, status_code: int = status.HTTP_200_OK) -> HTMLResponse:
    try:
        return templates.TemplateResponse(request, name, context, status_code=status_code)
    except TemplateError as e:
        raise RenderError(f"unable to render {name}: {e}") from e


def page_context(title: str, current_account: Account, **extra) -> dict:
    ctx = {
        "title": title,
        "account": current_account,
        "inverted_theme": settings.INVERTED_THEME,
    }
    ctx.update(extra)
    return ctx


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    current_account: Annotated[Account, Depends(auth.get_current_account)],
):
    items = await content.load_items(db, settings.MAX_CONTENT_ITEMS)
    item_votes = await votes.load_votes(db, current_account, get_all_ids(items))
    return render(request, "index.html", page_context("Index", current_account, items=items, votes=item_votes))


@router.get("/~{handle}", response_class=HTMLResponse)
async def user(
    handle: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    current_account: Annotated[Account, Depends(auth.get_current_account)],
):
    account = await accounts.load_account_by_handle(db, handle)
    items = await content.load_items_by_account(db, account)
    item_votes = await votes.load_votes(db, current_account, get_all_ids(items))
    return render(
        request,
        "user.html",
        page_context(f"Activity {account.handle}", current_account, user=account, items=items, votes=item_votes),
    )


async def redirect_to_ancestor(db: AsyncSession, hash: str, parent: str, mode: AncestorMode) -> RedirectResponse:
    ancestor = await content.load_ancestor(db, hash, parent, mode)
    return RedirectResponse(ancestor.permalink, status_code=status.HTTP_301_MOVED_PERMANENTLY)


@router.get("/p/{hash}/{parent}")
async def parent(
    hash: str,
    parent: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
):
    return await redirect_to_ancestor(db, hash, parent, AncestorMode.PARENT)


@router.get("/op/{hash}/{parent}")
async def op(
    hash: str,
    parent: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
):
    return await redirect_to_ancestor(db, hash, parent, AncestorMode.OP)


@router.get("/{year:int}/{month:int}/{day:int}/{hash}", response_class=HTMLResponse)
async def item(
    year: int,
    month: int,
    day: int,
    hash: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    current_account: Annotated[Account, Depends(auth.get_current_account)],
):
    try:
        submitted = date(year, month, day)
    except ValueError:
        raise NotFoundError(f"item {hash!r} not found")

    op_item = await content.load_item(db, hash, day=submitted)
    replies = await content.load_descendants(db, op_item)
    all_items = [op_item] + replies
    item_votes = await votes.load_votes(db, current_account, get_all_ids(all_items))
    return render(
        request,
        "content.html",
        page_context(op_item.title or op_item.hash, current_account, item=op_item, replies=replies, votes=item_votes),
    )


@router.post("/login")
async def login(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    handle: str = Form(...),
    password: str = Form(...),
):
    account = await auth.authenticate_account(db, handle, password)
    if account is None:
        raise AuthenticationError("Incorrect handle or password")
    auth.login(request, account)
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/logout")
async def logout(request: Request):
    auth.logout(request)
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
