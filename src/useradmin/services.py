"""Service layer for user account administration."""

import logging
from typing import Callable, List

from prometheus_client import Counter
from sqlalchemy.orm import Session

from .config import Settings
from .exceptions import (
    DuplicateUsernameError,
    InvalidCredentialsError,
    UserNotFoundError,
    UsernameNotFoundError,
)
from .models import ROLE_ADMIN, User
from .repository import SqlAlchemyRoleRepository, SqlAlchemyUserRepository, UserRepository
from .roles import RoleService
from .schemas import UserForm
from .security import hash_password, verify_password


logger = logging.getLogger(__name__)

# Prometheus counters for account changes
USER_CREATED_COUNTER = Counter("users_created_total", "Total user accounts created")
USER_UPDATED_COUNTER = Counter("users_updated_total", "Total user accounts updated")
USER_DELETED_COUNTER = Counter("users_deleted_total", "Total user accounts deleted")


class UserService:
    """Business rules for creating, editing, deleting and looking up users.

    Parameters
    ----------
    users: UserRepository
        Store for user records.
    role_service: RoleService
        Resolves submitted role ids to role records.
    password_hasher: callable
        One-way function applied to plain text passwords before storage.
    password_verifier: callable
        Checks a plain text password against a stored hash.
    """

    def __init__(
        self,
        users: UserRepository,
        role_service: RoleService,
        password_hasher: Callable[[str], str] = hash_password,
        password_verifier: Callable[[str, str], bool] = verify_password,
    ):
        self.users = users
        self.role_service = role_service
        self.password_hasher = password_hasher
        self.password_verifier = password_verifier

    def authenticate(self, username: str) -> User:
        """Load the user with its password hash and roles for credential checks."""
        user = self.users.find_by_username(username)
        if user is None:
            raise UsernameNotFoundError(username)
        logger.debug("loaded user %s for authentication", username)
        return user

    def verify_credentials(self, username: str, password: str) -> User:
        """Return the user when the password matches the stored hash."""
        try:
            user = self.authenticate(username)
        except UsernameNotFoundError as exc:
            raise InvalidCredentialsError() from exc
        if not self.password_verifier(password, user.password):
            raise InvalidCredentialsError()
        return user

    def list_users(self) -> List[User]:
        """Return all users ordered by id."""
        return self.users.find_all()

    def get_user(self, user_id: int) -> User:
        """Return the user with the given id or raise ``UserNotFoundError``."""
        user = self.users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def get_user_form(self, user_id: int) -> UserForm:
        """Return the edit form for a user; the password is left blank."""
        return self._to_form(self.get_user(user_id))

    def create_user(self, form: UserForm) -> User:
        """Create a user from the form, storing only the password hash."""
        logger.info("create user username=%s", form.username)
        self._validate_unique_username(form, None)
        user = self._apply_form(form, User())
        user.password = self.password_hasher(form.password or "")
        user.roles = self.role_service.resolve_roles(form.role_ids)

        user = self.users.save(user)
        USER_CREATED_COUNTER.inc()
        logger.info("created user id=%s username=%s", user.id, user.username)
        return user

    def update_user(self, form: UserForm, user_id: int) -> User:
        """Overwrite a user from the form; a blank password keeps the stored hash."""
        logger.info("update user id=%s", user_id)
        existing = self.get_user(user_id)
        self._validate_unique_username(form, existing)
        user = self._apply_form(form, existing)
        # Replaced wholesale; an empty list leaves the user without roles
        user.roles = self.role_service.resolve_roles(form.role_ids)

        user = self.users.save(user)
        USER_UPDATED_COUNTER.inc()
        logger.info("updated user id=%s username=%s", user.id, user.username)
        return user

    def delete_user(self, user_id: int) -> None:
        """Remove a user; its roles are left in place."""
        user = self.get_user(user_id)
        self.users.delete(user)
        USER_DELETED_COUNTER.inc()
        logger.info("deleted user id=%s", user_id)

    @staticmethod
    def _to_form(user: User) -> UserForm:
        return UserForm(
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            age=user.age,
            role_ids=sorted(role.id for role in user.roles),
        )

    def _apply_form(self, form: UserForm, user: User) -> User:
        user.username = form.username
        user.first_name = form.first_name
        user.last_name = form.last_name
        user.email = form.email
        user.age = form.age
        if form.password is not None and form.password.strip():
            user.password = self.password_hasher(form.password)
        return user

    def _validate_unique_username(self, form: UserForm, current: User | None) -> None:
        if not self.users.exists_by_username(form.username):
            return
        # A user may keep its own username
        if current is not None and current.username == form.username:
            return
        raise DuplicateUsernameError(form.username)


def build_user_service(session: Session) -> UserService:
    """Wire the SQLAlchemy stores and role resolver into a ``UserService``."""
    role_service = RoleService(SqlAlchemyRoleRepository(session))
    return UserService(SqlAlchemyUserRepository(session), role_service)


def bootstrap(session: Session, settings: Settings) -> None:
    """Seed default roles and, if configured, an initial administrator."""
    service = build_user_service(session)
    service.role_service.ensure_default_roles()

    if not (settings.admin_username and settings.admin_password):
        return
    if service.users.exists_by_username(settings.admin_username):
        return
    admin_role = service.role_service.find_by_name(ROLE_ADMIN)
    service.create_user(
        UserForm(
            username=settings.admin_username,
            password=settings.admin_password,
            role_ids=[admin_role.id],
        )
    )
    logger.info("created initial administrator %s", settings.admin_username)
