"""
Cookie utility routes for the Taskboard API.

Lets a client inspect, add and remove cookies on its own session, which is
handy when debugging authentication or user preferences.
"""

from fastapi import APIRouter, Request, Response

from api.models.schemas import CookieSet, OkResponse

router = APIRouter(prefix="/cookies", tags=["Cookies"])


@router.get(
    "",
    response_model=dict[str, str],
    summary="List cookies",
    description="All cookies sent with this request.",
)
async def list_cookies(request: Request) -> dict[str, str]:
    return dict(request.cookies)


@router.post(
    "",
    response_model=OkResponse,
    summary="Set a cookie",
)
async def set_cookie(cookie: CookieSet, response: Response) -> OkResponse:
    """Add or replace a cookie with the given attributes."""
    options = cookie.options
    response.set_cookie(
        key=cookie.name,
        value=cookie.value,
        max_age=options.max_age,
        path=options.path,
        httponly=options.httponly,
        secure=options.secure,
        samesite=options.samesite,
    )
    return OkResponse()


@router.delete(
    "/{name}",
    response_model=OkResponse,
    summary="Delete a cookie",
)
async def delete_cookie(name: str, response: Response, path: str = "/") -> OkResponse:
    response.delete_cookie(key=name, path=path)
    return OkResponse()
