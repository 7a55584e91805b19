# routes/user_routes.py

import logging

from fastapi import APIRouter, HTTPException, status, Depends, Response, Request, Form
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import ValidationError

from models.schemas import SignUpBody
from security import (
    SessionContext, authenticate_account, create_account, create_user_session,
    delete_user_session, get_session_context, set_session_cookie
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def sign_up(
    response: Response,
    request: Request,
    email: str = Form(...),
    password: str = Form(...)
):
    """Creates an account, signs it in and asks for profile setup."""
    try:
        body = SignUpBody(email=email, password=password)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()])

    account_id = await create_account(body.email, body.password)
    if not account_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    session_token = await create_user_session(account_id)
    set_session_cookie(response, request, session_token)
    logger.info(f"Account {account_id} registered.")

    return {
        "message": "Registration successful.",
        "account_id": account_id,
        "email": body.email.lower(),
        "profile_required": True
    }


@router.post("/login")
async def sign_in(
    response: Response,
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends()
):
    """Logs in an account and sets the session cookie."""
    account = await authenticate_account(form_data.username, form_data.password)
    if not account:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session_token = await create_user_session(account.id)
    set_session_cookie(response, request, session_token)
    logger.info(f"Account {account.id} signed in.")

    return {"message": "Login successful. Session cookie set.", "account_id": account.id}


@router.post("/logout")
async def sign_out(request: Request, response: Response):
    await delete_user_session(request, response)
    return {"message": "Successfully logged out"}


@router.get("/me")
async def who_am_i(context: SessionContext = Depends(get_session_context)):
    return {
        "account_id": context.account.id,
        "email": context.account.email,
        "profile": context.profile,
        "vet_profile": context.vet_profile,
        "profile_required": context.profile is None
    }
