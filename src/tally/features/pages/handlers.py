"""Server-rendered pages: home, dashboard, sign-in and sign-up."""

import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from src.tally.auth import SessionClaims, get_session
from src.tally.config import settings
from src.tally.database import User, get_db
from src.tally.features.expenses import service as expenses_service
from src.tally.features.users import get_current_user

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=Path(__file__).parent / "templates")

router = APIRouter(tags=["pages"])


def _context(user: User | None, **extra: Any) -> dict[str, Any]:
    """Values every page template needs for the navigation bar and Clerk's browser SDK."""
    return {
        "user": user,
        "clerk_publishable_key": settings.clerk_publishable_key,
        "clerk_frontend_api": settings.clerk_frontend_api,
        "sign_in_url": settings.clerk_sign_in_url,
        "sign_up_url": settings.clerk_sign_up_url,
        "after_sign_in_url": settings.clerk_after_sign_in_url,
        "after_sign_up_url": settings.clerk_after_sign_up_url,
        **extra,
    }


def _redirect_to_sign_in(session: SessionClaims | None) -> RedirectResponse:
    """
    Send the browser to sign in.

    A verified session without a user means the Clerk account is gone. The
    sign-in page is told to end that session first, or Clerk would bounce the
    browser straight back here.
    """
    url = settings.clerk_sign_in_url
    if session is not None:
        url = f"{url}?stale_session=1"
    return RedirectResponse(url, status_code=307)


def _same_origin(request: Request, url: str | None) -> str | None:
    """Return url if it points back into this app, otherwise None."""
    if not url:
        return None
    parts = urlsplit(url)
    if parts.netloc:
        if parts.scheme not in ("http", "https") or parts.netloc != request.url.netloc:
            return None
    elif not parts.path.startswith("/") or parts.path.startswith(("//", "/\\")):
        return None
    return url


@router.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    user: User | None = Depends(get_current_user),
    session: SessionClaims | None = Depends(get_session),
) -> Response:
    """Home page. Anonymous visitors are sent to sign in before anything renders."""
    if user is None:
        return _redirect_to_sign_in(session)
    return templates.TemplateResponse(request, "home.html", _context(user))


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    user: User | None = Depends(get_current_user),
    session: SessionClaims | None = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Recent expenses and per-category totals."""
    if user is None:
        return _redirect_to_sign_in(session)

    entries = expenses_service.list_expenses(db, user, limit=50)
    summary = expenses_service.summarize_expenses(db, user)
    return templates.TemplateResponse(
        request, "dashboard.html", _context(user, entries=entries, summary=summary)
    )


@router.get("/sign-in", response_class=HTMLResponse)
async def sign_in(
    request: Request,
    redirect_url: str | None = None,
    stale_session: bool = False,
) -> Response:
    """
    Mounts Clerk's sign-in widget. Public.

    Renders without resolving the user so it stays reachable while Clerk's
    Backend API or the database is down.
    """
    return templates.TemplateResponse(
        request,
        "sign_in.html",
        _context(
            None,
            after_sign_in_url=_same_origin(request, redirect_url)
            or settings.clerk_after_sign_in_url,
            sign_out_first=stale_session,
        ),
    )


@router.get("/sign-up", response_class=HTMLResponse)
async def sign_up(request: Request) -> Response:
    """Mounts Clerk's sign-up widget. Public."""
    return templates.TemplateResponse(request, "sign_up.html", _context(None))
