"""
CSRF token endpoint.
"""

from fastapi import APIRouter, Depends, Request, Response

from ..deps import get_csrf
from ..schemas import CSRFTokenResponse
from ...core.csrf import CSRF_COOKIE_MAX_AGE, CSRF_COOKIE_NAME, CSRFProtection

router = APIRouter(tags=["security"])


@router.get("/csrf-token", response_model=CSRFTokenResponse)
async def issue_csrf_token(
    request: Request, response: Response, csrf: CSRFProtection = Depends(get_csrf)
):
    """Issue a token; the signed copy is set as a cookie for double-submit checks."""
    token, cookie_value = csrf.issue()
    response.set_cookie(
        CSRF_COOKIE_NAME,
        cookie_value,
        max_age=CSRF_COOKIE_MAX_AGE,
        samesite="lax",
        secure=request.app.state.settings.is_production,
        httponly=True,
        path="/",
    )
    return CSRFTokenResponse(csrf_token=token)
