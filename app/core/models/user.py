import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from app.core.enums import UserRole
from app.db.session import Base


def _new_user_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """Person known to the system (student, teacher or admin). Identifier is an opaque string issued by the identity provider."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=_new_user_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(String(20), nullable=False, default=UserRole.STUDENT.value)
    image = Column(Text, nullable=True)
    image_cld_pub_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
