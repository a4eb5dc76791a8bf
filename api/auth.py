# ------------------------------------------
# Authentication API routes (FastAPI)
# - /auth/login   : Verifies credentials, returns an access token, sets the refresh cookie
# - /auth/refresh : Rotates the refresh cookie and returns a new access token
# - /auth/logout  : Revokes the refresh session and clears the cookie
# - /auth/me      : Profile of the authenticated user
# Uses dependency-injected DB session via get_db()
# ------------------------------------------

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from typing import Optional
from app.schemas.user import UserLogin, LoginResponse, UserProfile, MessageResponse
from app.services import auth_service
from app.services.user_service import get_user
from app.core.security import get_current_user, CurrentUser
from app.core.rate_limit import login_limiter, refresh_limiter
from app.core.config import (
    REFRESH_COOKIE_NAME, REFRESH_COOKIE_PATH, REFRESH_COOKIE_SAMESITE,
    REFRESH_COOKIE_SECURE, REFRESH_COOKIE_MAX_AGE
)
from app.db.database import get_db

router = APIRouter(prefix="/auth", tags=["Auth"])

def _set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=token,
        max_age=REFRESH_COOKIE_MAX_AGE,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=REFRESH_COOKIE_SECURE,
        samesite=REFRESH_COOKIE_SAMESITE,
    )

def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE_NAME,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=REFRESH_COOKIE_SECURE,
        samesite=REFRESH_COOKIE_SAMESITE,
    )

@router.post("/login", response_model=LoginResponse, dependencies=[Depends(login_limiter)])
def login(credentials: UserLogin, response: Response, db: Session = Depends(get_db)):
    tokens = auth_service.login(db, credentials.email, credentials.password)
    _set_refresh_cookie(response, tokens.refresh_token)
    return LoginResponse(accessToken=tokens.access_token)

@router.post("/refresh", response_model=LoginResponse, dependencies=[Depends(refresh_limiter)])
def refresh_token(
    response: Response,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_COOKIE_NAME),
    db: Session = Depends(get_db)
):
    if not refresh_cookie:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token provided")

    tokens = auth_service.refresh_session(db, refresh_cookie)
    _set_refresh_cookie(response, tokens.refresh_token)
    return LoginResponse(accessToken=tokens.access_token)

@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_COOKIE_NAME),
    db: Session = Depends(get_db)
):
    auth_service.logout(db, refresh_cookie)
    _clear_refresh_cookie(response)
    return {"message": "Logout successful"}

@router.get("/me", response_model=UserProfile)
def me(current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return UserProfile.from_user(get_user(db, current_user.id))
