from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    CUSTOMER = "CUSTOMER"
    MANAGER = "MANAGER"
    AUDITOR = "AUDITOR"


class LoanStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


def parse_role(value: str | Role | None) -> Role | None:
    if value is None:
        return None
    if isinstance(value, Role):
        return value
    return Role._value2member_map_.get(str(value).strip().upper())


def parse_loan_status(value: str | LoanStatus | None) -> LoanStatus | None:
    if value is None:
        return None
    if isinstance(value, LoanStatus):
        return value
    return LoanStatus._value2member_map_.get(str(value).strip().upper())


class CamelModel(BaseModel):
    """Base for request/response bodies exchanged in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
