"""HTTP Basic authentication with ADMIN / USER roles."""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional, Tuple

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from passlib.context import CryptContext

import config

logger = logging.getLogger(__name__)

ADMIN = "ADMIN"
USER = "USER"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
security = HTTPBasic()


@dataclass(frozen=True)
class User:
    username: str
    role: str


class UserStore:
    """In-memory user table; passwords are only kept hashed."""

    def __init__(self, users: Dict[str, Tuple[str, str]]):
        self._users = {
            username: (pwd_context.hash(password), role.upper())
            for username, (password, role) in users.items()
        }

    def authenticate(self, username: str, password: str) -> Optional[User]:
        entry = self._users.get(username)
        if entry is None:
            return None
        password_hash, role = entry
        if not pwd_context.verify(password, password_hash):
            return None
        return User(username=username, role=role)


@lru_cache(maxsize=1)
def get_user_store() -> UserStore:
    return UserStore(config.get_users_config())


def get_current_user(credentials: HTTPBasicCredentials = Depends(security)) -> User:
    user = get_user_store().authenticate(credentials.username, credentials.password)
    if user is None:
        logger.warning(f"Rejected credentials for user {credentials.username!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Basic"},
        )
    return user


def require_role(*roles: str):
    """Dependency factory admitting only users holding one of ``roles``."""

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User {user.username} is not allowed to perform this operation",
            )
        return user

    return dependency


require_admin = require_role(ADMIN)
require_reader = require_role(ADMIN, USER)
