"""Local account session endpoints.

Routes
------
POST   /auth/signup    Create an account and sign it in
POST   /auth/signin    Sign in
POST   /auth/signout   Forget the signed-in identity
GET    /auth/me        The signed-in user (401 if none)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from solaris import auth
from solaris.errors import AuthError

router = APIRouter()


class SignUp(BaseModel):
    email: str
    password: str
    username: Optional[str] = None


class SignIn(BaseModel):
    email: str
    password: str


@router.post("/signup", status_code=201)
def signup(body: SignUp, request: Request) -> dict[str, str]:
    try:
        user = auth.sign_up(request.app.state.db, body.email, body.password, body.username)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except AuthError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return user.to_dict()


@router.post("/signin")
def signin(body: SignIn, request: Request) -> dict[str, str]:
    try:
        user = auth.sign_in(request.app.state.db, body.email, body.password)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return user.to_dict()


@router.post("/signout")
def signout(request: Request) -> Response:
    auth.sign_out(request.app.state.db)
    return Response(status_code=204)


@router.get("/me")
def me(request: Request) -> dict[str, str]:
    user = auth.current_user(request.app.state.db)
    if user is None:
        raise HTTPException(status_code=401, detail="Not signed in.")
    return user.to_dict()
