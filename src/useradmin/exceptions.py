"""Errors raised by the user administration services."""


class UserAdminError(Exception):
    """Base class for service errors; ``status_code`` is used by the API."""

    status_code = 400


class UserNotFoundError(UserAdminError):
    status_code = 404

    def __init__(self, user_id: int):
        super().__init__(f"User not found with id: {user_id}")
        self.user_id = user_id


class DuplicateUsernameError(UserAdminError):
    def __init__(self, username: str):
        super().__init__(f"Username already exists: {username}")
        self.username = username


class UsernameNotFoundError(UserAdminError):
    """Credential lookup failed; the auth layer answers with a rejection."""

    status_code = 401

    def __init__(self, username: str):
        super().__init__("User not found")
        self.username = username


class InvalidCredentialsError(UserAdminError):
    status_code = 401

    def __init__(self):
        super().__init__("Invalid credentials")
