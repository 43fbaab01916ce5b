"""
Attempt Engine

Creates, resumes, submits and expires attempts. The engine gates creation on
assignment eligibility, freezes the question snapshot once, checks the
attempt token on every client mutation and applies the deadline lazily: any
access to a live attempt past ``expires_at`` first moves it to
``auto_submitted``.

Every state change goes through ``AttemptRepository.modify`` so concurrent
requests against the same attempt are serialized by the store.
"""

import random
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from assessly.common.auth.principal import Principal
from assessly.common.error_handling import (
    ConflictError,
    DuplicateError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from assessly.common.logger import attempt_logger, get_logger, log_execution_time, with_context
from assessly.common.utils import utcnow
from assessly.domain.assignments.resolver import AssignmentResolver
from assessly.domain.attempts import (
    AttemptStatus,
    TestAttempt,
    Violation,
    build_snapshots,
    normalize_answers,
)
from assessly.domain.definitions import Test
from assessly.storage import Repositories

logger = get_logger("assessments.engine")

DEFAULT_TOKEN_BYTES = 24
# Threshold used when the test behind an attempt has been deleted
DEFAULT_VIOLATION_THRESHOLD = 3

Clock = Callable[[], datetime]


@dataclass
class StartResult:
    """Outcome of a start request."""
    attempt: TestAttempt
    created: bool


class AttemptEngine:
    """
    Owns the attempt lifecycle.

    Args:
        repositories: Entity stores
        clock: Returns the current naive-UTC time
        rng: Random source for shuffling (``random.SystemRandom`` by default)
        token_bytes: Entropy of issued attempt tokens
    """

    def __init__(
        self,
        repositories: Repositories,
        clock: Clock = utcnow,
        rng: Optional[random.Random] = None,
        token_bytes: int = DEFAULT_TOKEN_BYTES
    ):
        self.repositories = repositories
        self.clock = clock
        self.rng = rng or random.SystemRandom()
        self.token_bytes = token_bytes
        self.resolver = AssignmentResolver(repositories.groups)

    async def expire_if_due(self, attempt: TestAttempt) -> TestAttempt:
        """
        Apply the deadline to one attempt.

        Returns:
            The attempt, transitioned to ``auto_submitted`` if it was overdue
        """
        now = self.clock()
        if not attempt.is_expired(now):
            return attempt
        updated = await self.repositories.attempts.modify(attempt.attempt_id, lambda a: a.expire(now))
        attempt_logger("assessments.engine", updated).info(
            f"Attempt auto-submitted on expiry with score {updated.score}/{updated.max_score}"
        )
        return updated

    async def expire_overdue(self) -> int:
        """
        Sweep every live attempt past its deadline.

        Returns:
            Number of attempts transitioned
        """
        now = self.clock()
        expired = 0
        for attempt in await self.repositories.attempts.list_live():
            if attempt.is_expired(now):
                await self.expire_if_due(attempt)
                expired += 1
        if expired:
            logger.info(f"Expired {expired} overdue attempts")
        return expired

    async def _load_owned(self, attempt_id: str, principal: Principal) -> TestAttempt:
        attempt = await self.repositories.attempts.get(attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt", attempt_id)
        if attempt.user_id != principal.id:
            raise ForbiddenError("Not allowed", details={'attempt_id': attempt_id})
        return attempt

    @staticmethod
    def _check_token(attempt: TestAttempt, attempt_token: Optional[str]) -> None:
        if not attempt_token or not secrets.compare_digest(str(attempt_token).encode(), attempt.attempt_token.encode()):
            raise ForbiddenError("Invalid attempt token", details={'attempt_id': attempt.attempt_id})

    @log_execution_time(logger)
    async def start_attempt(self, assignment_id: str, principal: Principal) -> StartResult:
        """
        Start a new attempt or resume the live one.

        Args:
            assignment_id: Assignment to start under
            principal: Requesting principal

        Returns:
            The attempt and whether it was newly created

        Raises:
            NotFoundError: If the assignment or its test doesn't exist
            ForbiddenError: If the principal is not assigned, the test window
                is closed, or the test was already completed
        """
        repos = self.repositories
        log = with_context("assessments.engine", assignment_id=assignment_id, user_id=principal.id)

        assignment = await repos.assignments.get(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment", assignment_id)

        now = self.clock()
        if not await self.resolver.is_eligible(assignment, principal.id, principal.roles, now):
            raise ForbiddenError("Not assigned to this test", details={'assignment_id': assignment_id})

        test = await repos.tests.get(assignment.test_id)
        if test is None:
            raise NotFoundError("Test", assignment.test_id)
        if not test.is_open(now):
            early = test.schedule_start is not None and now < test.schedule_start
            raise ForbiddenError(
                "Test not yet available" if early else "Test window closed",
                details={'test_id': test.test_id}
            )

        live = await repos.attempts.find_live(test.test_id, assignment_id, principal.id)
        if live is not None:
            log.info(f"Resuming attempt {live.attempt_id}")
            return StartResult(await self.expire_if_due(live), created=False)

        if await repos.attempts.find_completed(test.test_id, assignment_id, principal.id) is not None:
            raise ForbiddenError("You have already completed this test", details={'test_id': test.test_id})

        attempt = await self._new_attempt(test, assignment_id, principal, now)
        try:
            attempt = await repos.attempts.create_live(attempt)
        except DuplicateError:
            # A concurrent start won the insert; it may already have been submitted
            live = await repos.attempts.find_live(test.test_id, assignment_id, principal.id)
            if live is not None:
                log.info(f"Concurrent start resolved to attempt {live.attempt_id}")
                return StartResult(await self.expire_if_due(live), created=False)
            if await repos.attempts.find_completed(test.test_id, assignment_id, principal.id) is not None:
                raise ForbiddenError("You have already completed this test", details={'test_id': test.test_id})
            raise

        log.info(
            f"Attempt {attempt.attempt_id} started with {len(attempt.question_snapshots)} questions, "
            f"expires at {attempt.expires_at.isoformat()}"
        )
        return StartResult(attempt, created=True)

    async def _new_attempt(self, test: Test, assignment_id: str, principal: Principal, now: datetime) -> TestAttempt:
        questions = await self.repositories.questions.find_by_ids(test.question_ids)
        snapshots = build_snapshots(test, questions, self.rng)
        return TestAttempt.create(
            test_id=test.test_id,
            assignment_id=assignment_id,
            user_id=principal.id,
            attempt_token=secrets.token_hex(self.token_bytes),
            question_snapshots=snapshots,
            started_at=now,
            duration_minutes=test.duration_minutes
        )

    async def get_attempt(self, attempt_id: str, principal: Principal) -> TestAttempt:
        """
        Fetch an attempt for its owner, applying the deadline first.

        Raises:
            NotFoundError: If the attempt doesn't exist
            ForbiddenError: If the caller doesn't own the attempt
        """
        attempt = await self._load_owned(attempt_id, principal)
        return await self.expire_if_due(attempt)

    @log_execution_time(logger)
    async def submit_attempt(
        self,
        attempt_id: str,
        principal: Principal,
        attempt_token: Optional[str],
        answers: Iterable[Mapping[str, Any]]
    ) -> TestAttempt:
        """
        Submit answers and close the attempt.

        A submission after the deadline is still accepted; it is stored as
        ``auto_submitted``.

        Args:
            attempt_id: Attempt to submit
            principal: Caller, who must own the attempt
            attempt_token: Token issued when the attempt was started
            answers: Answer entries (see ``normalize_answers``)

        Returns:
            The scored attempt

        Raises:
            NotFoundError: If the attempt doesn't exist
            ForbiddenError: If the caller doesn't own it or the token is wrong
            ConflictError: If the attempt is already terminal
            ValidationError: If the answers are malformed
        """
        attempt = await self._load_owned(attempt_id, principal)
        self._check_token(attempt, attempt_token)
        answers = list(answers)

        now = self.clock()

        def submit(current: TestAttempt) -> None:
            if not current.is_live:
                raise ConflictError("Attempt already submitted", details={'status': current.status.value})
            current.answers = normalize_answers(current, answers)
            status = AttemptStatus.AUTO_SUBMITTED if now > current.expires_at else AttemptStatus.SUBMITTED
            current.finish(status, now)

        attempt = await self.repositories.attempts.modify(attempt_id, submit)
        attempt_logger("assessments.engine", attempt).info(
            f"Attempt {attempt.status.value} with score {attempt.score}/{attempt.max_score}"
        )
        return attempt

    @log_execution_time(logger)
    async def log_violation(
        self,
        attempt_id: str,
        principal: Principal,
        attempt_token: Optional[str],
        violation_type: str,
        details: str = "",
        ip_address: str = "",
        user_agent: str = ""
    ) -> TestAttempt:
        """
        Record a proctoring violation against a live attempt.

        Reaching the test's violation threshold forces ``auto_submitted``
        with whatever answers are stored. A threshold of 0 never forces it.

        Returns:
            The attempt after the violation was recorded

        Raises:
            NotFoundError: If the attempt doesn't exist
            ForbiddenError: If the caller doesn't own it or the token is wrong
            ConflictError: If the attempt is already terminal (an overdue
                attempt is expired first, then rejected)
            ValidationError: If the violation type is empty
        """
        attempt = await self._load_owned(attempt_id, principal)
        self._check_token(attempt, attempt_token)
        violation_type = (violation_type or "").strip()
        if not violation_type:
            raise ValidationError("Violation type is required")

        test = await self.repositories.tests.get(attempt.test_id)
        threshold = test.violation_threshold if test is not None else DEFAULT_VIOLATION_THRESHOLD

        now = self.clock()
        outcome: Dict[str, bool] = {'rejected': False, 'forced': False}

        def record(current: TestAttempt) -> None:
            current.expire(now)
            if not current.is_live:
                outcome['rejected'] = True
                return
            current.violations.append(Violation(
                type=violation_type,
                timestamp=now,
                ip_address=ip_address or "",
                user_agent=user_agent or "",
                details=details or ""
            ))
            current.updated_at = now
            if threshold > 0 and len(current.violations) >= threshold:
                current.finish(AttemptStatus.AUTO_SUBMITTED, now)
                outcome['forced'] = True

        attempt = await self.repositories.attempts.modify(attempt_id, record)
        log = attempt_logger("assessments.engine", attempt)

        if outcome['rejected']:
            raise ConflictError("Attempt already completed", details={'status': attempt.status.value})

        log.info(f"Violation '{violation_type}' recorded ({len(attempt.violations)}/{threshold or 'unlimited'})")
        if outcome['forced']:
            log.warning("Violation threshold reached, attempt auto-submitted")
        return attempt

    async def list_my_attempts(self, principal: Principal) -> List[TestAttempt]:
        """All of the caller's attempts, newest first, with deadlines applied."""
        attempts = await self.repositories.attempts.list_by_user(principal.id)
        return [await self.expire_if_due(attempt) for attempt in attempts]

    async def review_attempt(self, attempt_id: str, principal: Principal) -> Dict[str, Any]:
        """
        Build the owner's review of a finished attempt.

        The review exposes the answer key, so it is refused while the
        attempt can still be answered.

        Returns:
            Review dictionary with snapshot keys, graded answers and pass state

        Raises:
            NotFoundError: If the attempt doesn't exist
            ForbiddenError: If the caller doesn't own it
            ConflictError: If the attempt is still in progress
        """
        attempt = await self.get_attempt(attempt_id, principal)
        if attempt.is_live:
            raise ConflictError("Attempt is still in progress", details={'attempt_id': attempt_id})

        test = await self.repositories.tests.get(attempt.test_id)
        review = attempt.to_public_dict()
        review['question_snapshots'] = [snapshot.to_dict(include_key=True) for snapshot in attempt.question_snapshots]
        review['passing_score'] = test.passing_score if test is not None else None
        review['passed'] = attempt.score >= test.passing_score if test is not None else None
        return review
