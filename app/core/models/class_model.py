"""Classes students enroll in. Model named SchoolClass to avoid Python 'class' keyword."""
from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.enums import ClassStatus
from app.db.session import Base


class SchoolClass(Base):
    """A teacher's class for one subject. Invite code is unique across all classes; capacity bounds enrollments."""

    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_class_capacity_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False)
    teacher_id = Column(String(64), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    invite_code = Column(String(20), nullable=False, unique=True)
    capacity = Column(Integer, nullable=False, default=50)
    status = Column(String(20), nullable=False, default=ClassStatus.ACTIVE.value)
    banner_url = Column(Text, nullable=True)
    banner_cld_pub_id = Column(Text, nullable=True)
    schedules = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    subject = relationship("Subject", backref="classes")
    teacher = relationship("User", backref="taught_classes")
