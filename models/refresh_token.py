"""
RefreshToken model: long-lived tokens used to mint a new access token.
Fields:
- token (unique)
- access_token - value of the access token that spawned this one. A lookup
  key for cascade revocation, not a foreign key: the parent row may be gone.
- user_id (String(36)) - FK to users.id
- expires (naive UTC)
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(128), nullable=False, unique=True, index=True)
    access_token = Column(String(128), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<RefreshToken token={self.token[:8]}... user_id={self.user_id}>"
