"""
RefreshToken model: the current refresh token of each user.
Fields:
- id (Integer, primary key)
- user_id (Integer) - FK to users.id, unique: exactly one row per user
- refresh_token (Text) - the signed refresh token last issued to the user
- created_at, updated_at
"""
from sqlalchemy import Column, Integer, Text, ForeignKey
from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    refresh_token = Column(Text, nullable=False)

    def update(self, new_refresh_token: str):
        self.refresh_token = new_refresh_token
        return self

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id}>"
