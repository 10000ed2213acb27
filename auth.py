import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import bcrypt
from fastapi import Depends, Request

import crud
import sessions
from errors import AppError, BadInput, Forbidden, Unauthenticated
from schemas import Employee
from store import ItemStore
from utils import utcnow

logger = logging.getLogger(__name__)

SESSION_KEY = "session_token"
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72  # bcrypt ignores (or rejects) anything longer

LOGIN_FAILED = "Invalid email or password"


@dataclass(frozen=True)
class Authenticated:
    employee: Employee

    @property
    def is_admin(self) -> bool:
        return False


@dataclass(frozen=True)
class AuthenticatedAdmin(Authenticated):
    @property
    def is_admin(self) -> bool:
        return True


Identity = Union[Authenticated, AuthenticatedAdmin]


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def validate_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise BadInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise BadInput(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)
    if not (has_upper and has_lower and has_digit):
        raise BadInput("Password must contain uppercase letters, lowercase letters and digits")


async def authenticate(store: ItemStore, email: str, password: str) -> Employee:
    employee = await crud.find_employee_by_email(store, email)
    # same answer for unknown email, unset password and wrong password
    if employee is None or employee.password_hash is None:
        raise Unauthenticated(LOGIN_FAILED)
    if not verify_password(password, employee.password_hash):
        raise Unauthenticated(LOGIN_FAILED)
    return employee


async def set_password(store: ItemStore, employee_id: str, password: str) -> Employee:
    validate_password_strength(password)
    employee = await crud.get_employee(store, employee_id)
    updated = employee.model_copy(update={"password_hash": hash_password(password)})
    await crud.put_employee(store, updated)
    logger.info("Password set for employee %s", employee_id)
    return updated


async def resolve_identity(store: ItemStore, token: Optional[str], now: datetime) -> Identity:
    """Turn a session token into an identity.

    Every failure (no token, unknown or expired session, employee gone,
    unreadable record) is reported as the same ``Unauthenticated``.
    """
    if not token:
        raise Unauthenticated()
    try:
        employee_id = await sessions.load_session(store, token, now)
        if employee_id is None:
            raise Unauthenticated()
        employee = await crud.get_employee(store, employee_id)
    except Unauthenticated:
        raise
    except AppError as e:
        logger.info("Session could not be resolved: %s", e.__class__.__name__)
        raise Unauthenticated() from None
    if employee.is_admin:
        return AuthenticatedAdmin(employee)
    return Authenticated(employee)


def require_admin(identity: Identity) -> AuthenticatedAdmin:
    if not isinstance(identity, AuthenticatedAdmin):
        raise Forbidden()
    return identity


def get_store(request: Request) -> ItemStore:
    return request.app.state.store


async def current_identity(
    request: Request,
    store: ItemStore = Depends(get_store),
    now: datetime = Depends(utcnow),
) -> Identity:
    return await resolve_identity(store, request.session.get(SESSION_KEY), now)


async def current_admin(identity: Identity = Depends(current_identity)) -> AuthenticatedAdmin:
    return require_admin(identity)
