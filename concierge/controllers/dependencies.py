"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.config.dependencies import ServiceContainer
from concierge.database import get_session
from concierge.models.user import User
from concierge.utils import AuthenticationError, decode_access_token

bearer_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
SessionDep = Annotated[AsyncSession, Depends(get_session)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


async def get_current_user(
    token: Annotated[str, Depends(bearer_scheme)],
    session: SessionDep,
) -> User:
    """Load the account named by the token's ``sub`` claim."""

    try:
        user_id = decode_access_token(token).user_id
    except (AuthenticationError, ValueError):
        raise _unauthorized("Could not validate credentials") from None

    user = await session.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


ServicesDep = Annotated[ServiceContainer, Depends(get_services)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
