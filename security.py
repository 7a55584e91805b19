# security.py

import bcrypt
import logging
import secrets
from datetime import datetime, timezone
from fastapi import Depends, HTTPException, status, Response
from fastapi.requests import HTTPConnection
from typing import Optional

from pydantic import BaseModel

import config
from database import ACCOUNTS, SESSIONS, USERS, VETERINARIANS, get_collection, new_id, to_store_datetime, from_store_datetime
from errors import ProfileRequired, store_operation
from models.schemas import Account, Role, User, UserSession, Veterinarian

logger = logging.getLogger(__name__)


# --- Password Utilities ---
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compares a plain text password with a stored hash."""
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))

def get_password_hash(password: str) -> str:
    """Returns a secure bcrypt hash."""
    hashed_bytes = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
    return hashed_bytes.decode('utf-8')


# --- Accounts (identity) ---
@store_operation("creating account")
async def create_account(email: str, password: str) -> Optional[str]:
    """Creates the identity record. Returns None when the e-mail is taken."""
    accounts = get_collection(ACCOUNTS)
    email = email.lower()
    if await accounts.find_one({"email": email}):
        return None

    account_id = new_id()
    await accounts.update_one(
        {"_id": account_id},
        {
            "$setOnInsert": {"email": email, "hashedPassword": get_password_hash(password)},
            "$currentDate": {"createdAt": True},
        },
        upsert=True,
    )
    return account_id


@store_operation("authenticating account")
async def authenticate_account(email: str, password: str) -> Optional[Account]:
    doc = await get_collection(ACCOUNTS).find_one({"email": email.lower()})
    if not doc or not verify_password(password, doc["hashedPassword"]):
        return None
    return Account.model_validate(doc)


# --- Session Management Functions ---
@store_operation("creating session")
async def create_user_session(user_id: str) -> str:
    """Creates a session document, saves it to DB, and returns the secure random token."""
    session_token = secrets.token_hex(32)
    session = UserSession.start(session_token, user_id, config.SESSION_EXPIRATION_MINUTES)

    session_doc = session.model_dump(exclude={"id"})
    for key in ("login_time", "last_active", "expires_at"):
        session_doc[key] = to_store_datetime(session_doc[key])
    session_doc["_id"] = new_id()

    await get_collection(SESSIONS).insert_one(session_doc)
    return session_token


def set_session_cookie(response: Response, connection: HTTPConnection, session_token: str):
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=session_token,
        httponly=True,
        max_age=config.SESSION_EXPIRATION_MINUTES * 60,
        path="/",
        secure=connection.url.scheme == "https",
        samesite="Lax"
    )


@store_operation("reading session")
async def get_current_session(connection: HTTPConnection) -> Optional[UserSession]:
    """Retrieves and validates the session from the cookie and database."""
    session_token = connection.cookies.get(config.SESSION_COOKIE_NAME)
    if not session_token:
        return None

    sessions = get_collection(SESSIONS)
    session_doc = await sessions.find_one({"token": session_token})
    if not session_doc:
        return None

    session = UserSession.model_validate(session_doc)
    if from_store_datetime(session.expires_at) < datetime.now(timezone.utc):
        await sessions.delete_one({"_id": session.id})
        logger.info(f"Session of account {session.user_id} expired.")
        return None

    # Sliding window
    await sessions.update_one(
        {"_id": session.id},
        {"$currentDate": {"last_active": True}}
    )
    return session


@store_operation("deleting session")
async def delete_user_session(connection: HTTPConnection, response: Response):
    """Deletes the session from the DB and removes the cookie."""
    session_token = connection.cookies.get(config.SESSION_COOKIE_NAME)
    if session_token:
        await get_collection(SESSIONS).delete_one({"token": session_token})
    response.delete_cookie(config.SESSION_COOKIE_NAME, path="/")


# --- Session Context ---
class SessionContext(BaseModel):
    """Everything a request knows about who is calling.

    Built from the session cookie on sign-in and discarded on sign-out; handlers
    receive it explicitly instead of reading ambient state.
    """
    session: UserSession
    account: Account
    profile: Optional[User] = None
    vet_profile: Optional[Veterinarian] = None

    @property
    def user(self) -> User:
        if self.profile is None:
            raise ProfileRequired(f"Account {self.account.id} has no profile.")
        return self.profile

    @property
    def role(self) -> Role:
        return Role(self.user.role)

    def has_role(self, *roles: Role) -> bool:
        return self.profile is not None and Role(self.profile.role) in roles


@store_operation("loading session context")
async def resolve_session_context(connection: HTTPConnection) -> Optional[SessionContext]:
    session = await get_current_session(connection)
    if not session:
        return None

    account_doc = await get_collection(ACCOUNTS).find_one({"_id": session.user_id})
    if not account_doc:
        return None

    profile = None
    vet_profile = None
    profile_doc = await get_collection(USERS).find_one({"_id": session.user_id})
    if profile_doc:
        profile = User.from_document(profile_doc)
        if profile.vet_profile_id:
            vet_doc = await get_collection(VETERINARIANS).find_one({"_id": profile.vet_profile_id})
            if vet_doc:
                vet_profile = Veterinarian.from_document(vet_doc)

    return SessionContext(
        session=session,
        account=Account.model_validate(account_doc),
        profile=profile,
        vet_profile=vet_profile,
    )


# --- Authentication Dependencies ---
async def get_session_context(connection: HTTPConnection) -> SessionContext:
    """Signed-in caller, profile optional."""
    context = await resolve_session_context(connection)
    if not context:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials: No valid session.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context


async def get_profile_context(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    """Signed-in caller with a completed profile; otherwise a redirect to profile setup."""
    if context.profile is None:
        raise ProfileRequired(f"Account {context.account.id} has no profile.")
    return context


def require_roles(*roles: Role):
    async def dependency(context: SessionContext = Depends(get_profile_context)) -> SessionContext:
        if not context.has_role(*roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied for your role.")
        return context
    return dependency


get_current_admin = require_roles(Role.ADMIN)
get_current_veterinarian = require_roles(Role.VETERINARIAN)
