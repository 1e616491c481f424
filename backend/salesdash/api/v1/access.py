"""
Page Access API: one-shot checks and a live decision stream
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from salesdash.database import get_db
from salesdash.dependencies import AuthUser, get_app_settings_snapshot, get_current_user, get_identity
from salesdash.schemas.settings import AccessDecisionResponse, AppSettings
from salesdash.services.access_service import AccessController, UserProfile, evaluate
from salesdash.services.observable import Observable
from salesdash.services.settings_service import settings_feed, watch_app_settings
from salesdash.services.user_service import watch_profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["access"])


def get_settings_feed(db=Depends(get_db)) -> Observable:
    """The app-wide settings feed, or a dedicated watch when it is not running."""
    feed = settings_feed.get()
    if feed is not None:
        return feed
    return watch_app_settings(db)


def get_profile_feed_factory(db=Depends(get_db)):
    return lambda uid, claim_role=None: watch_profile(db, uid, claim_role)


@router.get("/check", response_model=AccessDecisionResponse)
async def check_access(
    path: str = Query(..., min_length=1),
    current_user: AuthUser = Depends(get_current_user),
    app_settings: AppSettings = Depends(get_app_settings_snapshot),
):
    """Decide whether the caller may open ``path``."""
    profile = UserProfile(
        uid=current_user.uid,
        role=current_user.role,
        email=current_user.email,
        require_password_change=current_user.require_password_change,
    )
    return evaluate(path, profile, app_settings).as_dict()


@router.websocket("/stream")
async def access_stream(
    websocket: WebSocket,
    path: str = Query(...),
    token: Optional[str] = Query(None),
    identity=Depends(get_identity),
    settings_observable: Observable = Depends(get_settings_feed),
    profile_feed_factory=Depends(get_profile_feed_factory),
):
    """
    Push an access decision whenever the role, settings or sign-in state
    changes for ``path``. Clients reconnect when they navigate.
    """
    await websocket.accept()
    loop = asyncio.get_running_loop()
    decisions: asyncio.Queue = asyncio.Queue()

    claims = (identity.verify_id_token(token) if token else None) or {}
    uid = claims.get("uid") or claims.get("sub")
    claim_role = claims.get("role")

    controller = AccessController(
        path, Observable(uid), settings_observable, lambda profile_uid: profile_feed_factory(profile_uid, claim_role),
    )
    controller.on_change(lambda decision: loop.call_soon_threadsafe(decisions.put_nowait, decision))
    controller.start()

    async def push_decisions():
        while True:
            decision = await decisions.get()
            await websocket.send_json(decision.as_dict())

    sender = asyncio.create_task(push_decisions())
    try:
        # client messages are ignored; receiving detects the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Access stream for %s closed by client", path)
    finally:
        sender.cancel()
        controller.close()
        if settings_observable is not settings_feed.get():
            close = getattr(settings_observable, "close", None)
            if close is not None:
                close()
