"""
Storage tables for the assessment engine.
"""

from sqlalchemy import Boolean, Column, Index, String

from assessly.database.base import ModelBase


class QuestionRecord(ModelBase):
    __tablename__ = "questions"

    kind = Column(String(20), nullable=False, index=True)
    difficulty = Column(String(20), nullable=False, index=True)
    topic = Column(String(200), nullable=False, default="", index=True)
    created_by = Column(String(64), index=True)


class TestRecord(ModelBase):
    __test__ = False
    __tablename__ = "tests"

    created_by = Column(String(64), index=True)


class GroupRecord(ModelBase):
    __tablename__ = "eligibility_groups"

    name = Column(String(200), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)


class RoleRecord(ModelBase):
    __tablename__ = "access_roles"

    name = Column(String(200), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)


class AssignmentRecord(ModelBase):
    __tablename__ = "assignments"

    test_id = Column(String(64), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)


class AttemptRecord(ModelBase):
    __tablename__ = "test_attempts"

    test_id = Column(String(64), nullable=False)
    assignment_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False)

    __table_args__ = (
        Index("ix_test_attempts_test_user", "test_id", "user_id"),
        Index("ix_test_attempts_user_status", "user_id", "status"),
        # One attempt per (test, assignment, user) in any status; there are no retakes
        Index("uq_test_attempts_triple", "test_id", "assignment_id", "user_id", unique=True),
    )
