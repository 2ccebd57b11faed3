from sqlalchemy import Boolean, Column, String, Text

from models.base_model import BaseModel, Base


class Library(BaseModel, Base):
    __tablename__ = "libraries"

    name = Column(String(255), nullable=False, unique=True)
    # short name used as the prefix of per-library account scopes ("first:admin")
    scope = Column(String(64), nullable=False, unique=True, index=True)
    active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
