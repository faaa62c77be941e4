from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from tootfeed.session import SessionManager

logger = logging.getLogger("tootfeed")

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

router = APIRouter()


def get_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def _back_home() -> RedirectResponse:
    return RedirectResponse(url="/", status_code=303)


@router.get("/")
def index(request: Request, manager: SessionManager = Depends(get_manager)):
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "state": manager.state.value,
            "endpoint": manager.endpoint,
            "authorize_url": manager.authorize_url,
            "feed": manager.feed,
            "error": manager.error,
        },
    )


@router.get("/api/session")
def session_snapshot(manager: SessionManager = Depends(get_manager)) -> dict[str, Any]:
    return {
        "state": manager.state.value,
        "endpoint": manager.endpoint,
        "authorize_url": manager.authorize_url,
        "error": manager.error,
        "feed_size": len(manager.feed),
    }


@router.post("/endpoint")
def save_endpoint(endpoint: str = Form(""), manager: SessionManager = Depends(get_manager)) -> RedirectResponse:
    manager.set_endpoint(endpoint)
    return _back_home()


@router.post("/login")
async def login(endpoint: str | None = Form(None), manager: SessionManager = Depends(get_manager)) -> RedirectResponse:
    if endpoint is not None:
        manager.set_endpoint(endpoint)
    await manager.start_login()
    return _back_home()


@router.post("/code")
async def submit_code(code: str = Form(""), manager: SessionManager = Depends(get_manager)) -> RedirectResponse:
    await manager.submit_code(code)
    return _back_home()


@router.post("/refresh")
async def refresh(manager: SessionManager = Depends(get_manager)) -> RedirectResponse:
    await manager.refresh_feed()
    return _back_home()


@router.post("/logout")
def logout(manager: SessionManager = Depends(get_manager)) -> RedirectResponse:
    manager.logout()
    return _back_home()


__all__ = ["router"]
