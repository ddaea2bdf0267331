# app/models/assessment_models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    Boolean,
    UniqueConstraint,
)
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import relationship

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DBTest(Base):
    __tablename__ = "tests"

    id = Column(String, primary_key=True, default=_new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    requirements = Column(Text, nullable=True)  # Purpose of the test, fed to the AI grader
    tags = Column(JSON, nullable=False, default=list)
    duration_minutes = Column(Integer, nullable=True)
    public_link = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    questions = relationship(
        "DBQuestion",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="DBQuestion.order",
    )
    assignments = relationship("DBAssignment", back_populates="test", cascade="all, delete-orphan")


class DBQuestion(Base):
    __tablename__ = "questions"

    id = Column(String, primary_key=True, default=_new_id)
    test_id = Column(String, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    question_type = Column(String, nullable=False)  # mcq / freetext / timed
    content = Column(Text, nullable=False)
    options = Column(JSON, nullable=True)  # For MCQ: [{"id", "text", "points"?}]
    correct_answer = Column(String, nullable=True)  # Option id for MCQ
    time_limit_seconds = Column(Integer, nullable=True)
    points = Column(Integer, nullable=False, default=1)
    tags = Column(JSON, nullable=False, default=list)
    order = Column(Integer, nullable=False, default=0)

    test = relationship("DBTest", back_populates="questions")


class DBCandidate(Base):
    __tablename__ = "candidates"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=True)
    position = Column(String, nullable=True)
    status = Column(String, nullable=False, default="active")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    assignments = relationship("DBAssignment", back_populates="candidate", cascade="all, delete-orphan")


class DBAssignment(Base):
    __tablename__ = "assignments"
    __table_args__ = (
        UniqueConstraint("candidate_id", "test_id", name="uq_assignment_candidate_test"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    candidate_id = Column(String, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False)
    test_id = Column(String, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False)
    unique_link = Column(String, unique=True, index=True, nullable=False)
    status = Column(String, nullable=False, default="not_started")
    test_snapshot = Column(Text, nullable=True)  # Serialized TestSnapshot
    assigned_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    candidate = relationship("DBCandidate", back_populates="assignments")
    test = relationship("DBTest", back_populates="assignments")
    responses = relationship("DBResponse", back_populates="assignment", cascade="all, delete-orphan")


class DBResponse(Base):
    __tablename__ = "responses"
    __table_args__ = (
        UniqueConstraint("assignment_id", "question_id", name="uq_response_assignment_question"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    assignment_id = Column(String, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    # Not a foreign key: the question may have been deleted from the live test
    question_id = Column(String, nullable=False)
    answer = Column(Text, nullable=True)
    is_correct = Column(Boolean, nullable=True)
    score = Column(Float, nullable=True)
    time_taken_seconds = Column(Integer, nullable=True)
    grader_notes = Column(Text, nullable=True)
    answered_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    assignment = relationship("DBAssignment", back_populates="responses")


class DBSetting(Base):
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
