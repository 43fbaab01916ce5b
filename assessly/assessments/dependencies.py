"""
FastAPI dependencies wiring request handlers to the services kept on
``app.state``.
"""

from fastapi import Request

from assessly.assessments.engine import AttemptEngine
from assessly.assessments.evaluation import EvaluationService
from assessly.assessments.reports import ReportService
from assessly.assessments.services import (
    AssignmentService,
    GroupService,
    QuestionService,
    RoleService,
    TestService,
)
from assessly.storage import Repositories


def get_repositories(request: Request) -> Repositories:
    return request.app.state.repositories


def get_engine(request: Request) -> AttemptEngine:
    return request.app.state.engine


def get_question_service(request: Request) -> QuestionService:
    return QuestionService(get_repositories(request), get_engine(request).clock)


def get_test_service(request: Request) -> TestService:
    return TestService(get_repositories(request), get_engine(request).clock)


def get_group_service(request: Request) -> GroupService:
    return GroupService(get_repositories(request), get_engine(request).clock)


def get_role_service(request: Request) -> RoleService:
    return RoleService(get_repositories(request), get_engine(request).clock)


def get_assignment_service(request: Request) -> AssignmentService:
    engine = get_engine(request)
    return AssignmentService(engine.repositories, engine.resolver, engine.clock)


def get_evaluation_service(request: Request) -> EvaluationService:
    return EvaluationService(get_engine(request))


def get_report_service(request: Request) -> ReportService:
    return ReportService(get_engine(request))
