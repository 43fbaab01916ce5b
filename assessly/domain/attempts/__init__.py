"""
Test attempt domain: lifecycle, snapshots and scoring.
"""

from .model import (
    AttemptStatus,
    TERMINAL_STATUSES,
    QuestionSnapshot,
    AttemptAnswer,
    Violation,
    TestAttempt,
)
from .repository import AttemptRepository, AttemptMutator
from .memory_repository import MemoryAttemptRepository
from .snapshot import build_snapshots, snapshot_question
from .scoring import normalize_answers, apply_manual_marks

__all__ = [
    'AttemptStatus',
    'TERMINAL_STATUSES',
    'QuestionSnapshot',
    'AttemptAnswer',
    'Violation',
    'TestAttempt',
    'AttemptRepository',
    'AttemptMutator',
    'MemoryAttemptRepository',
    'build_snapshots',
    'snapshot_question',
    'normalize_answers',
    'apply_manual_marks',
]
