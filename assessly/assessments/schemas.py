"""
Shared request-model helpers.
"""

from datetime import datetime

from pydantic import BaseModel, validator

from assessly.common.utils import parse_datetime


class RequestModel(BaseModel):
    """
    Base for request bodies.

    Datetime fields are normalized to naive UTC, the form every entity stores.
    """

    class Config:
        extra = "forbid"

    @validator("*")
    def normalize_datetimes(cls, v):
        if isinstance(v, datetime):
            return parse_datetime(v)
        return v

    def changes(self):
        """Fields the client actually sent, for partial updates."""
        return self.dict(exclude_unset=True)
