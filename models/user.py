from enum import Enum

from sqlalchemy import Column, String, Date, Boolean
from sqlalchemy.types import Enum as SAEnum

from models.base_model import Base, BaseModel


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class User(BaseModel, Base):
    __tablename__ = "users"

    full_name = Column(String(255), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    # stored lower-cased; uniqueness is therefore case-insensitive
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(SAEnum(Role, name="user_role", native_enum=False), nullable=False, default=Role.USER)
    # one-way: nothing ever flips this back to True
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def deactivate(self):
        self.is_active = False
        self.touch()
