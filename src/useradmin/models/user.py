from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from .role import user_roles


class User(Base):
    """SQLAlchemy model for administered user accounts."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    # one-way hash, never the plain text
    password = Column(String, nullable=False)
    first_name = Column(String)
    last_name = Column(String)
    email = Column(String)
    age = Column(Integer)
    roles = relationship(
        "Role", secondary=user_roles, collection_class=set, lazy="selectin"
    )

    @property
    def role_names(self) -> set:
        return {role.name for role in self.roles}

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"
