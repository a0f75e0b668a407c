from datetime import datetime, timedelta
from typing import Generator

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
import jwt

from .config import settings
from .database import SessionLocal
from .exceptions import UsernameNotFoundError
from .models import ROLE_ADMIN, User
from .roles import RoleService
from .repository import SqlAlchemyRoleRepository
from .services import UserService, build_user_service

security = HTTPBearer(auto_error=False)

ACCESS_TOKEN_COOKIE = "access_token"


def get_db() -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return build_user_service(db)


def get_role_service(db: Session = Depends(get_db)) -> RoleService:
    return RoleService(SqlAlchemyRoleRepository(db))


def _create_token(user: User, expires: timedelta, token_type: str) -> str:
    payload = {"sub": user.username, "exp": datetime.utcnow() + expires, "type": token_type}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user: User) -> str:
    return _create_token(user, timedelta(minutes=settings.access_token_expire_minutes), "access")


def create_refresh_token(user: User) -> str:
    return _create_token(user, timedelta(minutes=settings.refresh_token_expire_minutes), "refresh")


def decode_token(token: str, token_type: str) -> str:
    """Return the username carried by a valid token of the given type."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    username: str | None = payload.get("sub")
    if username is None or payload.get("type") != token_type:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    return username


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    access_token: str | None = Cookie(None),
    user_service: UserService = Depends(get_user_service),
) -> User:
    # Browser forms carry the token in a cookie instead of a header
    token = credentials.credentials if credentials is not None else access_token
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )
    username = decode_token(token, "access")

    try:
        return user_service.authenticate(username)
    except UsernameNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found"
        )


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if ROLE_ADMIN not in current_user.role_names:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return current_user
