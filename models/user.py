from models.base_model import Base, BaseModel
from sqlalchemy import Column, String


class User(BaseModel, Base):
    __tablename__ = "users"
    email = Column(String(255), nullable=False, unique=True, index=True)
    # Null for accounts created through an external login
    password_hash = Column(String(255), nullable=True)
    nickname = Column(String(255), nullable=True)

    def update(self, nickname):
        """Refresh the display name reported by the identity provider."""
        self.nickname = nickname
        return self

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def __repr__(self):
        return f"<User id={self.id} email={self.email}>"
