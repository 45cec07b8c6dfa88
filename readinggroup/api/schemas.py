import datetime
from typing import Optional

from ninja import Schema
from pydantic import ConfigDict


def to_camel(string: str) -> str:
    parts = string.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


class CamelSchema(Schema):
    """
    Base schema for Django Ninja that converts field names to camelCase in JSON
    responses while using snake_case in Python code.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentOut(CamelSchema):
    filename: str
    original_name: str
    path: str


class TopicIn(CamelSchema):
    text: str


class TopicOut(CamelSchema):
    id: int  # noqa: A003
    text: str
    votes: int
    proposed_by: str
    is_selected: bool
    week_date: Optional[str] = None
    pdf_file: Optional[DocumentOut] = None
    upvoted_by: list[str]
    created_on: Optional[datetime.datetime] = None


class PersonOut(CamelSchema):
    identity: str
    name: str


class PrincipalOut(CamelSchema):
    identity: str
    display_name: str
    is_admin: bool


class UserStatsOut(CamelSchema):
    total_voted: int
    total_selected: int


class ClearedOut(CamelSchema):
    message: str
    deleted: int


class ErrorOut(CamelSchema):
    reason_code: str
    message: str
