"""
HTTP tests for the assessment API.
"""

import random

import pytest
from fastapi.testclient import TestClient

from assessly import create_app
from assessly.common.auth import Permission, create_access_token
from assessly.config import load_settings
from assessly.tests.helpers import FakeClock

API = "/api/v1"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(clock):
    settings = load_settings(STORAGE_BACKEND="memory", JWT_SECRET_KEY="api-test-secret")
    app = create_app(settings=settings, clock=clock, rng=random.Random(11))
    with TestClient(app) as client:
        yield client


def auth(subject, *permissions, roles=None):
    token = create_access_token(subject, roles=roles, permissions=[p.value for p in permissions])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(client):
    return {
        'author': auth("author", Permission.CREATE),
        'manager': auth("manager", Permission.ASSIGN),
        'alice': auth("alice", Permission.TAKE),
        'bob': auth("bob", Permission.TAKE),
        'grader': auth("grader", Permission.EVALUATE),
        'viewer': auth("viewer", Permission.REPORT),
        'admin': auth("admin", Permission.MANAGE_ROLES, Permission.MANAGE_GROUPS),
    }


def _create_question(client, headers, **overrides):
    payload = {
        'kind': "MCQ",
        'text': "2 + 2 = ?",
        'options': [
            {'text': "3", 'is_correct': False},
            {'text': "4", 'is_correct': True},
            {'text': "5", 'is_correct': False},
        ],
        'marks': 1,
    }
    payload.update(overrides)
    response = client.post(f"{API}/questions", json=payload, headers=headers['author'])
    assert response.status_code == 201, response.text
    return response.json()['data']


def _create_assigned_test(client, headers, question_ids, users=("alice",), **test_fields):
    payload = {'title': "Arithmetic", 'duration_minutes': 30, 'question_ids': list(question_ids)}
    payload.update(test_fields)
    response = client.post(f"{API}/tests", json=payload, headers=headers['author'])
    assert response.status_code == 201, response.text
    test = response.json()['data']

    response = client.post(
        f"{API}/assignments",
        json={'test_id': test['test_id'], 'assigned_to_users': list(users)},
        headers=headers['manager']
    )
    assert response.status_code == 201, response.text
    return test, response.json()['data']


def _start(client, headers, assignment, user='alice'):
    return client.post(
        f"{API}/attempts/start",
        json={'assignment_id': assignment['assignment_id']},
        headers=headers[user]
    )


class TestEnvelopes:
    def test_missing_token(self, client):
        response = client.get(f"{API}/questions")
        assert response.status_code == 401
        body = response.json()
        assert body['status'] == "error"
        assert body['code'] == "authentication_error"

    def test_garbage_token(self, client):
        response = client.get(f"{API}/questions", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_missing_permission(self, client, headers):
        response = client.get(f"{API}/questions", headers=headers['alice'])
        assert response.status_code == 403
        assert response.json()['code'] == "forbidden"

    def test_invalid_body(self, client, headers):
        response = client.post(f"{API}/questions", json={'kind': "MCQ"}, headers=headers['author'])
        assert response.status_code == 422
        body = response.json()
        assert body['code'] == "validation_error"
        assert any(d['location'][-1] == "text" for d in body['details'])

    def test_unknown_fields_rejected(self, client, headers):
        response = client.post(
            f"{API}/groups", json={'name': "Cohort", 'colour': "blue"}, headers=headers['admin']
        )
        assert response.status_code == 422

    def test_domain_validation(self, client, headers):
        response = client.post(
            f"{API}/questions",
            json={'kind': "MCQ", 'text': "?", 'options': [{'text': "a", 'is_correct': False}]},
            headers=headers['author']
        )
        assert response.status_code == 422
        assert response.json()['code'] == "validation_error"

    def test_not_found(self, client, headers):
        response = client.get(f"{API}/tests/missing", headers=headers['author'])
        assert response.status_code == 404
        body = response.json()
        assert body['code'] == "not_found"
        assert body['details']['resource_id'] == "missing"

    def test_duplicate_group(self, client, headers):
        client.post(f"{API}/groups", json={'name': "Cohort"}, headers=headers['admin'])
        response = client.post(f"{API}/groups", json={'name': "Cohort"}, headers=headers['admin'])
        assert response.status_code == 409
        assert response.json()['code'] == "conflict"


class TestCatalogue:
    def test_question_lifecycle(self, client, headers):
        question = _create_question(client, headers, topic="math", tags=["basics"])

        listed = client.get(f"{API}/questions", params={'tag': "basics"}, headers=headers['author'])
        assert [q['question_id'] for q in listed.json()['data']] == [question['question_id']]
        uncategorized = client.get(f"{API}/questions", params={'topic': "__uncategorized__"},
                                   headers=headers['author'])
        assert uncategorized.json()['data'] == []

        updated = client.put(f"{API}/questions/{question['question_id']}", json={'marks': 4},
                             headers=headers['author'])
        assert updated.json()['data']['marks'] == 4
        assert updated.json()['data']['text'] == "2 + 2 = ?"

        deleted = client.delete(f"{API}/questions/{question['question_id']}", headers=headers['author'])
        assert deleted.status_code == 200
        assert client.get(f"{API}/questions/{question['question_id']}",
                          headers=headers['author']).status_code == 404

    def test_test_detail_and_pruning(self, client, headers):
        question = _create_question(client, headers)
        response = client.post(
            f"{API}/tests",
            json={'title': "Quiz", 'duration_minutes': 10, 'question_ids': [question['question_id'], "ghost"]},
            headers=headers['author']
        )
        test = response.json()['data']
        assert test['question_ids'] == [question['question_id']]

        detail = client.get(f"{API}/tests/{test['test_id']}", headers=headers['manager']).json()['data']
        assert [q['question_id'] for q in detail['questions']] == [question['question_id']]

        updated = client.put(
            f"{API}/tests/{test['test_id']}",
            json={'violation_threshold': 0, 'title': None},
            headers=headers['author']
        ).json()['data']
        assert updated['violation_threshold'] == 0
        assert updated['title'] == "Quiz"

    def test_roles_grant_permissions(self, client, headers):
        roles = client.get(f"{API}/roles", headers=headers['admin']).json()['data']
        assert Permission.EVALUATE.value in roles['permissions']

        response = client.post(
            f"{API}/roles",
            json={'name': "grader", 'permissions': [Permission.EVALUATE.value]},
            headers=headers['admin']
        )
        assert response.status_code == 201
        role = response.json()['data']

        holder = auth("carol", roles=["grader"])
        assert client.get(f"{API}/evaluations/pending", headers=holder).status_code == 200

        client.put(f"{API}/roles/{role['role_id']}", json={'is_active': False}, headers=headers['admin'])
        assert client.get(f"{API}/evaluations/pending", headers=holder).status_code == 403

    def test_unknown_permission_in_role(self, client, headers):
        response = client.post(
            f"{API}/roles", json={'name': "odd", 'permissions': ["test.fly"]}, headers=headers['admin']
        )
        assert response.status_code == 422

    def test_assignment_for_missing_test(self, client, headers):
        response = client.post(
            f"{API}/assignments", json={'test_id': "ghost", 'assigned_to_users': ["alice"]},
            headers=headers['manager']
        )
        assert response.status_code == 404

    def test_group_assignment_is_eligible(self, client, headers):
        question = _create_question(client, headers)
        group = client.post(f"{API}/groups", json={'name': "Cohort", 'members': ["bob"]},
                            headers=headers['admin']).json()['data']
        test = client.post(f"{API}/tests", json={'title': "Quiz", 'duration_minutes': 10,
                                                 'question_ids': [question['question_id']]},
                           headers=headers['author']).json()['data']
        client.post(f"{API}/assignments",
                    json={'test_id': test['test_id'], 'assigned_to_groups': [group['group_id']]},
                    headers=headers['manager'])

        eligible = client.get(f"{API}/assignments/eligible", headers=headers['bob']).json()['data']
        assert len(eligible) == 1
        assert eligible[0]['test']['question_count'] == 1
        assert client.get(f"{API}/assignments/eligible", headers=headers['alice']).json()['data'] == []


class TestAttemptFlow:
    def test_start_submit_review(self, client, headers, clock):
        q1 = _create_question(client, headers, marks=1)
        q2 = _create_question(client, headers, text="3 + 3 = ?", marks=2, options=[
            {'text': "6", 'is_correct': True},
            {'text': "7", 'is_correct': False},
        ])
        _, assignment = _create_assigned_test(
            client, headers, [q1['question_id'], q2['question_id']], shuffle_options=False, passing_score=1
        )

        started = _start(client, headers, assignment)
        assert started.status_code == 201
        attempt = started.json()['data']
        assert started.json()['message'] == "Attempt started"
        assert attempt['status'] == "in_progress"
        assert len(attempt['attempt_token']) == 48
        assert all('correct_option_index' not in q for q in attempt['questions'])
        assert attempt['max_score'] == 3

        resumed = _start(client, headers, assignment)
        assert resumed.status_code == 200
        assert resumed.json()['data']['attempt_id'] == attempt['attempt_id']

        assert client.get(f"{API}/attempts/{attempt['attempt_id']}", headers=headers['bob']).status_code == 403

        clock.advance(minutes=5)
        answers = [
            {'question_id': q1['question_id'], 'selected_option_index': 1},
            {'question_id': q2['question_id'], 'selected_option_index': 1},
        ]
        bad_token = client.post(
            f"{API}/attempts/{attempt['attempt_id']}/submit",
            json={'attempt_token': "wrong", 'answers': answers},
            headers=headers['alice']
        )
        assert bad_token.status_code == 403

        submitted = client.post(
            f"{API}/attempts/{attempt['attempt_id']}/submit",
            json={'attempt_token': attempt['attempt_token'], 'answers': answers},
            headers=headers['alice']
        )
        assert submitted.status_code == 200, submitted.text
        data = submitted.json()['data']
        assert data['status'] == "submitted"
        assert data['score'] == 1
        assert 'attempt_token' not in data

        again = client.post(
            f"{API}/attempts/{attempt['attempt_id']}/submit",
            json={'attempt_token': attempt['attempt_token'], 'answers': answers},
            headers=headers['alice']
        )
        assert again.status_code == 409

        restart = _start(client, headers, assignment)
        assert restart.status_code == 403
        assert restart.json()['message'] == "You have already completed this test"

        fetched = client.get(f"{API}/attempts/{attempt['attempt_id']}", headers=headers['alice']).json()['data']
        assert 'attempt_token' not in fetched

        review = client.get(f"{API}/attempts/{attempt['attempt_id']}/review", headers=headers['alice'])
        assert review.status_code == 200
        assert review.json()['data']['passed'] is True
        keys = {s['question_id']: s['correct_option_index'] for s in review.json()['data']['question_snapshots']}
        assert keys == {q1['question_id']: 1, q2['question_id']: 0}

        mine = client.get(f"{API}/attempts/my", headers=headers['alice']).json()['data']
        assert [a['attempt_id'] for a in mine] == [attempt['attempt_id']]

    def test_string_option_index_rejected(self, client, headers):
        question = _create_question(client, headers)
        _, assignment = _create_assigned_test(client, headers, [question['question_id']])
        attempt = _start(client, headers, assignment).json()['data']

        response = client.post(
            f"{API}/attempts/{attempt['attempt_id']}/submit",
            json={'attempt_token': attempt['attempt_token'],
                  'answers': [{'question_id': question['question_id'], 'selected_option_index': "1"}]},
            headers=headers['alice']
        )
        assert response.status_code == 422

    def test_not_assigned(self, client, headers):
        question = _create_question(client, headers)
        _, assignment = _create_assigned_test(client, headers, [question['question_id']])
        response = _start(client, headers, assignment, user='bob')
        assert response.status_code == 403
        assert response.json()['message'] == "Not assigned to this test"

    def test_violations_auto_submit(self, client, headers):
        question = _create_question(client, headers)
        _, assignment = _create_assigned_test(client, headers, [question['question_id']], violation_threshold=2)
        attempt = _start(client, headers, assignment).json()['data']
        url = f"{API}/attempts/{attempt['attempt_id']}/violations"
        payload = {'attempt_token': attempt['attempt_token'], 'type': "tab_switch"}

        first = client.post(url, json=payload, headers={**headers['alice'], 'User-Agent': "pytest-browser"})
        assert first.json()['data'] == {
            'attempt_id': attempt['attempt_id'],
            'status': "in_progress",
            'violation_count': 1,
            'auto_submitted': False,
        }

        second = client.post(url, json=payload, headers=headers['alice'])
        assert second.json()['message'] == "Attempt auto-submitted"
        assert second.json()['data']['status'] == "auto_submitted"

        third = client.post(url, json=payload, headers=headers['alice'])
        assert third.status_code == 409

    def test_expired_attempt_is_auto_submitted_on_fetch(self, client, headers, clock):
        question = _create_question(client, headers)
        _, assignment = _create_assigned_test(client, headers, [question['question_id']], duration_minutes=1)
        attempt = _start(client, headers, assignment).json()['data']

        clock.advance(seconds=90)
        fetched = client.get(f"{API}/attempts/{attempt['attempt_id']}", headers=headers['alice']).json()['data']
        assert fetched['status'] == "auto_submitted"
        assert fetched['submitted_at'] is not None

        review = client.get(f"{API}/attempts/{attempt['attempt_id']}/review", headers=headers['alice'])
        assert review.status_code == 200


class TestEvaluationAndReports:
    def test_evaluate_descriptive_answer(self, client, headers):
        essay = _create_question(client, headers, kind="DESCRIPTIVE", text="Explain.", options=[], marks=5)
        _, assignment = _create_assigned_test(client, headers, [essay['question_id']])
        attempt = _start(client, headers, assignment).json()['data']

        review_too_early = client.get(f"{API}/attempts/{attempt['attempt_id']}/review", headers=headers['alice'])
        assert review_too_early.status_code == 409

        client.post(
            f"{API}/attempts/{attempt['attempt_id']}/submit",
            json={'attempt_token': attempt['attempt_token'],
                  'answers': [{'question_id': essay['question_id'], 'answer_text': "Because."}]},
            headers=headers['alice']
        )

        pending = client.get(f"{API}/evaluations/pending", headers=headers['grader']).json()['data']
        assert [a['attempt_id'] for a in pending] == [attempt['attempt_id']]
        assert 'attempt_token' not in pending[0]

        evaluated = client.post(
            f"{API}/evaluations/{attempt['attempt_id']}",
            json={'answers': [{'question_id': essay['question_id'], 'marks_awarded': 4, 'feedback': "ok"}],
                  'evaluation_notes': "fine"},
            headers=headers['grader']
        )
        assert evaluated.status_code == 200
        assert evaluated.json()['data']['score'] == 4
        assert evaluated.json()['data']['evaluated_by'] == "grader"

        assert client.get(f"{API}/evaluations/pending", headers=headers['grader']).json()['data'] == []

        too_many = client.post(
            f"{API}/evaluations/{attempt['attempt_id']}",
            json={'answers': [{'question_id': essay['question_id'], 'marks_awarded': 9}]},
            headers=headers['grader']
        )
        assert too_many.status_code == 422

        overview = client.get(f"{API}/reports/overview", headers=headers['viewer']).json()['data']
        assert overview == {
            'test_count': 1,
            'assignment_count': 1,
            'attempt_count': 1,
            'avg_score_percent': 80,
            'total_violations': 0,
        }

    def test_reports_require_permission(self, client, headers):
        assert client.get(f"{API}/reports/overview", headers=headers['grader']).status_code == 403
