from models.base_model import Base, BaseModel
from sqlalchemy import Boolean, Column, String, Text


class User(BaseModel, Base):
    """Account record resolved by the UserDirectory."""
    __tablename__ = "users"

    username = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    # whitespace-separated scope words, e.g. "first:admin second:regular"
    scope = Column(Text, nullable=False, default="")
    f_name = Column(String(255), nullable=True)
    l_name = Column(String(255), nullable=True)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")
