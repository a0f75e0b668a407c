from sqlalchemy import Column, ForeignKey, Integer, String, Table

from ..database import Base


ROLE_ADMIN = "ROLE_ADMIN"
ROLE_USER = "ROLE_USER"
DEFAULT_ROLES = (ROLE_ADMIN, ROLE_USER)


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id"), primary_key=True),
)


class Role(Base):
    """SQLAlchemy model for a named authority such as ``ROLE_ADMIN``."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)

    @property
    def display_name(self) -> str:
        """Role name without the ``ROLE_`` prefix, e.g. ``ADMIN``."""
        return self.name[len("ROLE_"):] if self.name.startswith("ROLE_") else self.name

    def __repr__(self) -> str:
        return f"<Role id={self.id} name={self.name!r}>"
