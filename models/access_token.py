"""
AccessToken model: opaque bearer tokens issued by the TokenOrchestrator.
Fields:
- token (unique, the bearer value itself)
- user_id (String(36)) - FK to users.id
- scope (scope words granted to this token)
- expires (naive UTC; the token is expired once now >= expires)
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from models.base_model import BaseModel, Base


class AccessToken(BaseModel, Base):
    __tablename__ = "access_tokens"

    token = Column(String(128), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    scope = Column(Text, nullable=False, default="")
    expires = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<AccessToken token={self.token[:8]}... user_id={self.user_id}>"
