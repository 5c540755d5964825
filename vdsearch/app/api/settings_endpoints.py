from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request, Response

from vdsearch.app.schemas.session import ThemePreference, ThemeUpdateRequest

router = APIRouter(prefix="/settings", tags=["settings"])

THEME_COOKIE = "theme"
THEME_COOKIE_MAX_AGE = 60 * 60 * 24 * 365
_THEMES = ("light", "dark")


def resolve_theme(cookie_value: Optional[str], color_scheme_hint: Optional[str]) -> ThemePreference:
    """Stored preference first, then the browser's color-scheme hint, then light."""

    if cookie_value in _THEMES:
        return ThemePreference(theme=cookie_value, source="cookie")
    hint = (color_scheme_hint or "").strip().strip('"').lower()
    if hint in _THEMES:
        return ThemePreference(theme=hint, source="client-hint")
    return ThemePreference(theme="light", source="default")


def _store_theme(response: Response, theme: str) -> None:
    response.set_cookie(THEME_COOKIE, theme, max_age=THEME_COOKIE_MAX_AGE, samesite="lax")


@router.get("/theme", response_model=ThemePreference)
async def get_theme(request: Request, response: Response) -> ThemePreference:
    response.headers["Accept-CH"] = "Sec-CH-Prefers-Color-Scheme"
    response.headers["Vary"] = "Sec-CH-Prefers-Color-Scheme"
    return resolve_theme(
        request.cookies.get(THEME_COOKIE),
        request.headers.get("sec-ch-prefers-color-scheme"),
    )


@router.put("/theme", response_model=ThemePreference)
async def set_theme(payload: ThemeUpdateRequest, response: Response) -> ThemePreference:
    _store_theme(response, payload.theme)
    return ThemePreference(theme=payload.theme, source="cookie")


@router.post("/theme/toggle", response_model=ThemePreference)
async def toggle_theme(request: Request, response: Response) -> ThemePreference:
    current = resolve_theme(
        request.cookies.get(THEME_COOKIE),
        request.headers.get("sec-ch-prefers-color-scheme"),
    )
    new_theme = "dark" if current.theme == "light" else "light"
    _store_theme(response, new_theme)
    return ThemePreference(theme=new_theme, source="cookie")
