"""
Tests for snapshot construction, answer normalization and manual marks.
"""

import random

import pytest

from assessly.common.error_handling import ValidationError
from assessly.domain.attempts import (
    AttemptStatus,
    TestAttempt,
    apply_manual_marks,
    build_snapshots,
    normalize_answers,
)
from assessly.domain.definitions import Test
from assessly.domain.questions import QuestionKind
from assessly.tests.helpers import START, descriptive, mcq


def _questions():
    return [
        mcq("First", options=("a", "b", "c", "d"), correct=2),
        mcq("Second", options=("w", "x", "y", "z"), correct=0, marks=2),
        descriptive("Third", marks=4),
    ]


def test_snapshot_key_follows_presented_order():
    questions = _questions()
    test = Test.create(title="Quiz", duration_minutes=5)
    snapshots = build_snapshots(test, questions, random.Random(11))

    correct_text = {q.question_id: q.options[q.correct_option_index].text for q in questions if q.options}
    for snapshot in snapshots:
        if snapshot.kind == QuestionKind.MCQ:
            assert snapshot.options[snapshot.correct_option_index] == correct_text[snapshot.question_id]
        else:
            assert snapshot.options == []
            assert snapshot.correct_option_index is None
    assert sorted(s.question_id for s in snapshots) == sorted(q.question_id for q in questions)


def test_snapshot_is_deterministic_for_a_seed():
    questions = _questions()
    test = Test.create(title="Quiz", duration_minutes=5)
    first = build_snapshots(test, questions, random.Random(42))
    second = build_snapshots(test, questions, random.Random(42))
    assert first == second


def test_no_shuffle_keeps_definition_order():
    questions = _questions()
    test = Test.create(title="Quiz", duration_minutes=5, shuffle_questions=False, shuffle_options=False)
    snapshots = build_snapshots(test, questions, random.Random(1))
    assert [s.question_id for s in snapshots] == [q.question_id for q in questions]
    assert snapshots[0].options == ["a", "b", "c", "d"]
    assert snapshots[0].correct_option_index == 2


def _attempt():
    questions = _questions()
    test = Test.create(title="Quiz", duration_minutes=5, shuffle_questions=False, shuffle_options=False)
    return TestAttempt.create(
        test_id=test.test_id,
        assignment_id="a1",
        user_id="alice",
        attempt_token="tok",
        question_snapshots=build_snapshots(test, questions),
        started_at=START,
        duration_minutes=5
    ), questions


class TestNormalizeAnswers:
    def test_kind_comes_from_snapshot(self):
        attempt, questions = _attempt()
        answers = normalize_answers(attempt, [
            {'question_id': questions[0].question_id, 'selected_option_index': 2},
            {'question_id': questions[2].question_id, 'kind': "DESCRIPTIVE", 'answer_text': "text"},
        ])
        assert [a.kind for a in answers] == [QuestionKind.MCQ, QuestionKind.DESCRIPTIVE]
        assert answers[1].answer_text == "text"

    @pytest.mark.parametrize("entry", [
        {'question_id': "not-in-attempt"},
        {'question_id': None},
        {'question_id': 0, 'selected_option_index': 9},
        {'question_id': 0, 'selected_option_index': -1},
        {'question_id': 0, 'selected_option_index': "1"},
        {'question_id': 0, 'selected_option_index': True},
        {'question_id': 0, 'kind': "DESCRIPTIVE"},
        {'question_id': 2, 'selected_option_index': 0},
    ])
    def test_rejects_malformed_entries(self, entry):
        attempt, questions = _attempt()
        entry = dict(entry)
        if isinstance(entry['question_id'], int):
            entry['question_id'] = questions[entry['question_id']].question_id
        with pytest.raises(ValidationError):
            normalize_answers(attempt, [entry])

    def test_rejects_duplicate_question(self):
        attempt, questions = _attempt()
        entry = {'question_id': questions[0].question_id, 'selected_option_index': 1}
        with pytest.raises(ValidationError):
            normalize_answers(attempt, [entry, dict(entry)])


class TestManualMarks:
    def _finished(self):
        attempt, questions = _attempt()
        attempt.answers = normalize_answers(attempt, [
            {'question_id': questions[0].question_id, 'selected_option_index': 2},
            {'question_id': questions[2].question_id, 'answer_text': "an essay"},
        ])
        attempt.finish(AttemptStatus.SUBMITTED, START)
        return attempt, questions

    def test_marks_added_to_mcq_score(self):
        attempt, questions = self._finished()
        assert attempt.score == 1
        score = apply_manual_marks(attempt, [
            {'question_id': questions[2].question_id, 'marks_awarded': 3, 'feedback': "good"},
        ], "grader", notes="ok")
        assert score == 4
        assert attempt.evaluated_by == "grader"
        assert attempt.evaluation_notes == "ok"
        assert attempt.answers[1].feedback == "good"

    def test_mcq_entries_do_not_change_marks(self):
        attempt, questions = self._finished()
        apply_manual_marks(attempt, [{'question_id': questions[0].question_id, 'marks_awarded': 0}], "grader")
        assert attempt.score == 1

    def test_unanswered_descriptive_is_a_no_op(self):
        attempt, questions = _attempt()
        attempt.finish(AttemptStatus.AUTO_SUBMITTED, START)
        apply_manual_marks(attempt, [{'question_id': questions[2].question_id, 'marks_awarded': 2}], "grader")
        assert attempt.score == 0

    @pytest.mark.parametrize("marks", [-1, 5, "3"])
    def test_out_of_range_marks(self, marks):
        attempt, questions = self._finished()
        with pytest.raises(ValidationError):
            apply_manual_marks(attempt, [{'question_id': questions[2].question_id, 'marks_awarded': marks}], "grader")

    def test_unknown_question(self):
        attempt, _ = self._finished()
        with pytest.raises(ValidationError):
            apply_manual_marks(attempt, [{'question_id': "missing", 'marks_awarded': 1}], "grader")
