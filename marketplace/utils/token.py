from jose import jwt, JWTError
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session
from marketplace.config import settings
from marketplace.database import get_session
from marketplace.errors import Unauthenticated
from marketplace.models.user import Profile

bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str):
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options={"verify_aud": settings.jwt_audience is not None},
        )
        return payload
    except JWTError:
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session)
) -> Profile:
    if credentials is None:
        raise Unauthenticated()

    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise Unauthenticated()

    user_id = payload.get("sub") or payload.get("user_id")

    if user_id is None:
        raise Unauthenticated()

    user = session.get(Profile, str(user_id))

    if user is None or not user.can_login:
        raise Unauthenticated()

    return user
