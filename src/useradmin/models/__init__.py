from .role import DEFAULT_ROLES, ROLE_ADMIN, ROLE_USER, Role, user_roles
from .user import User

__all__ = ["DEFAULT_ROLES", "ROLE_ADMIN", "ROLE_USER", "Role", "User", "user_roles"]
