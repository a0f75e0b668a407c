"""Credential store: repository interfaces and their SQLAlchemy implementations."""

import logging
from typing import Iterable, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Role, User


logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    def find_by_id(self, user_id: int) -> Optional[User]: ...

    def find_by_username(self, username: str) -> Optional[User]: ...

    def exists_by_username(self, username: str) -> bool: ...

    def save(self, user: User) -> User: ...

    def delete(self, user: User) -> None: ...

    def find_all(self) -> List[User]: ...


class RoleRepository(Protocol):
    def find_by_name(self, name: str) -> Optional[Role]: ...

    def find_by_ids(self, ids: Iterable[int]) -> List[Role]: ...

    def find_all(self) -> List[Role]: ...

    def save(self, role: Role) -> Role: ...


def _commit(session: Session) -> None:
    """Commit the session, rolling back and re-raising on database errors."""
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("database commit failed")
        raise


class SqlAlchemyUserRepository:
    """``UserRepository`` backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def find_by_username(self, username: str) -> Optional[User]:
        return self.session.query(User).filter(User.username == username).first()

    def exists_by_username(self, username: str) -> bool:
        query = self.session.query(User.id).filter(User.username == username)
        return self.session.query(query.exists()).scalar()

    def save(self, user: User) -> User:
        self.session.add(user)
        _commit(self.session)
        self.session.refresh(user)
        return user

    def delete(self, user: User) -> None:
        self.session.delete(user)
        _commit(self.session)

    def find_all(self) -> List[User]:
        return self.session.query(User).order_by(User.id).all()


class SqlAlchemyRoleRepository:
    """``RoleRepository`` backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_name(self, name: str) -> Optional[Role]:
        return self.session.query(Role).filter(Role.name == name).first()

    def find_by_ids(self, ids: Iterable[int]) -> List[Role]:
        ids = list(ids)
        if not ids:
            return []
        return self.session.query(Role).filter(Role.id.in_(ids)).order_by(Role.id).all()

    def find_all(self) -> List[Role]:
        return self.session.query(Role).order_by(Role.id).all()

    def save(self, role: Role) -> Role:
        self.session.add(role)
        _commit(self.session)
        self.session.refresh(role)
        return role
