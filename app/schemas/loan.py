from datetime import datetime
from decimal import Decimal

from pydantic import field_serializer

from app.schemas.common import CamelModel, LoanStatus


class LoanApplicationRequest(CamelModel):
    amount: Decimal | None = None
    term: int | None = None
    purpose: str | None = None


class LoanUpdateRequest(CamelModel):
    amount: Decimal | None = None
    term: int | None = None
    purpose: str | None = None


class LoanReviewRequest(CamelModel):
    status: str | None = None
    review_comment: str | None = None


class LoanOut(CamelModel):
    id: int
    amount: Decimal
    term: int
    purpose: str
    status: LoanStatus
    user_id: int
    user_name: str | None = None
    reviewed_by_id: int | None = None
    reviewed_by_name: str | None = None
    review_comment: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    user_deleted: bool = False

    @field_serializer("amount")
    def _serialize_amount(self, value: Decimal) -> str:
        return str(value)

    @classmethod
    def from_loan(cls, loan) -> "LoanOut":
        owner = loan.user
        reviewer = loan.reviewed_by
        return cls(
            id=loan.id,
            amount=loan.amount,
            term=loan.term,
            purpose=loan.purpose,
            status=loan.status,
            user_id=loan.user_id if loan.user_id is not None else owner.id,
            user_name=owner.name if owner is not None else None,
            reviewed_by_id=reviewer.id if reviewer is not None else loan.reviewed_by_id,
            reviewed_by_name=reviewer.name if reviewer is not None else None,
            review_comment=loan.review_comment,
            created_at=loan.created_at,
            updated_at=loan.updated_at,
            user_deleted=bool(owner is not None and (owner.deleted or owner.deleted_at is not None)),
        )


class LoanPage(CamelModel):
    items: list[LoanOut]
    total: int
    page: int
    size: int
    total_pages: int
