from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

ViewName = Literal["search", "settings", "password", "admin"]
ViewAction = Literal["open_settings", "request_admin", "submit_password", "back", "go_home"]
Theme = Literal["light", "dark"]


class ViewSessionState(BaseModel):
    session_id: str
    view: ViewName
    authenticated: bool


class ViewActionRequest(BaseModel):
    action: ViewAction
    password: Optional[str] = None


class ViewActionResponse(ViewSessionState):
    access_token: Optional[str] = None
    expires_at: Optional[int] = None


class ThemePreference(BaseModel):
    theme: Theme
    source: Literal["cookie", "client-hint", "default"]


class ThemeUpdateRequest(BaseModel):
    theme: Theme
