from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from vdsearch.app.auth.dependencies import get_admin_password, issue_admin_token
from vdsearch.app.core.view_router import InvalidTransition, ViewRouter
from vdsearch.app.schemas.session import ViewActionRequest, ViewActionResponse, ViewSessionState
from vdsearch.app.utils import view_sessions
from vdsearch.app.utils.observability import record_admin_login

logger = logging.getLogger("auth.view_sessions")

router = APIRouter(prefix="/ui/sessions", tags=["ui"])


def _state(session_id: str, router_: ViewRouter) -> ViewSessionState:
    return ViewSessionState(session_id=session_id, view=router_.view, authenticated=router_.authenticated)


def _require_session(session_id: str) -> ViewRouter:
    view_router = view_sessions.get_session(session_id)
    if view_router is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown or expired session")
    return view_router


@router.post("", response_model=ViewSessionState, status_code=status.HTTP_201_CREATED)
async def create_view_session() -> ViewSessionState:
    session_id, view_router = view_sessions.create_session()
    return _state(session_id, view_router)


@router.get("/{session_id}", response_model=ViewSessionState)
async def get_view_session(session_id: str) -> ViewSessionState:
    return _state(session_id, _require_session(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_view_session(session_id: str) -> None:
    view_sessions.clear_session(session_id)


@router.post("/{session_id}/actions", response_model=ViewActionResponse)
async def apply_view_action(request: Request, session_id: str, payload: ViewActionRequest) -> ViewActionResponse:
    view_router = _require_session(session_id)

    if payload.action == "open_settings":
        view_router.open_settings()
    elif payload.action == "request_admin":
        view_router.request_admin()
    elif payload.action == "back":
        view_router.back()
    elif payload.action == "go_home":
        view_router.go_home()
    elif payload.action == "submit_password":
        secret = get_admin_password()
        try:
            accepted = view_router.submit_password(payload.password, secret)
        except InvalidTransition as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

        client = request.client.host if request.client else None
        if not accepted:
            record_admin_login("failure")
            logger.info(
                "Admin password rejected",
                extra={"json_fields": {"event": "admin_login_failed", "client": client}},
            )
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect password.")

        token = issue_admin_token(session_id)
        record_admin_login("success")
        logger.info(
            "Admin session authenticated",
            extra={
                "json_fields": {
                    "event": "admin_login",
                    "session": session_id,
                    "expiresAt": token.expires_at,
                    "client": client,
                }
            },
        )
        return ViewActionResponse(
            **_state(session_id, view_router).model_dump(),
            access_token=token.access_token,
            expires_at=token.expires_at,
        )

    return ViewActionResponse(**_state(session_id, view_router).model_dump())
