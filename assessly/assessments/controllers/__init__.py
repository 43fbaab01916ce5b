"""
HTTP controllers for the assessment modules.

Each module exposes a ``router`` registered under ``/api/v1/<name>``.
"""

from assessly.assessments.controllers import (
    assignments,
    attempts,
    evaluations,
    groups,
    questions,
    reports,
    roles,
    tests,
)

# Module name -> router, in registration order
ROUTERS = {
    "questions": questions.router,
    "tests": tests.router,
    "groups": groups.router,
    "roles": roles.router,
    "assignments": assignments.router,
    "attempts": attempts.router,
    "evaluations": evaluations.router,
    "reports": reports.router,
}

__all__ = ["ROUTERS"]
