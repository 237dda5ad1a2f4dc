from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core import errors
from app.core.logging import audit_event
from app.core.settings import settings
from app.models.loan import Loan
from app.models.user import User
from app.schemas.common import LoanStatus, Role, parse_loan_status, parse_role
from app.services import validation

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

SORT_FIELDS = {
    "id": Loan.id,
    "amount": Loan.amount,
    "term": Loan.term,
    "status": Loan.status,
    "purpose": Loan.purpose,
    "createdAt": Loan.created_at,
    "created_at": Loan.created_at,
    "updatedAt": Loan.updated_at,
    "updated_at": Loan.updated_at,
}


def _money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LoanPageResult:
    items: list[Loan]
    total: int
    page: int
    size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0


class LoanService:
    """Loan lifecycle: apply, review, update, delete and listing.

    Every mutating operation ends in exactly one commit on the injected session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get_user_or_404(self, email: str, *, allow_deleted: bool = False) -> User:
        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None or (user.deleted and not allow_deleted):
            raise errors.ResourceNotFoundError.for_resource("User", email)
        return user

    async def _get_loan_or_404(self, loan_id: int) -> Loan:
        result = await self.db.execute(select(Loan).where(Loan.id == loan_id))
        loan = result.scalar_one_or_none()
        if loan is None:
            raise errors.ResourceNotFoundError.for_resource("Loan", loan_id)
        return loan

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except StaleDataError as exc:
            await self.db.rollback()
            raise errors.BusinessConflictError(
                "Loan was modified by another request; reload and retry",
                code="CONCURRENT_MODIFICATION",
            ) from exc
        except IntegrityError as exc:
            await self.db.rollback()
            raise errors.BusinessConflictError("Loan change violates a data constraint") from exc

    @staticmethod
    def _ensure_owner_and_pending(loan: Loan, caller_email: str, action: str) -> None:
        if loan.user is None or loan.user.email != caller_email:
            raise errors.ValidationError(f"You can only {action} your own loans")
        if loan.status != LoanStatus.PENDING.value:
            raise errors.ValidationError(f"Only pending loans can be {action}d")

    async def apply_for_loan(
        self, owner_email: str, amount: Any, term: Any, purpose: Any
    ) -> Loan:
        logger.info("User %s applying for loan", owner_email)
        errors.raise_for_errors(validation.validate_loan_application(amount, term, purpose))
        owner = await self._get_user_or_404(owner_email)

        loan = Loan(
            amount=_money(amount),
            term=term,
            purpose=purpose.strip(),
            status=LoanStatus.PENDING.value,
            user_id=owner.id,
            user=owner,
        )
        self.db.add(loan)
        await self._commit()
        await self.db.refresh(loan)
        logger.info("Loan application submitted by user %s: loan_id=%s", owner_email, loan.id)
        audit_event("loan.applied", actor=owner_email, loan_id=loan.id, amount=str(loan.amount), term=loan.term)
        return loan

    async def list_loans(
        self,
        page: int = 0,
        size: int | None = None,
        status: str | None = None,
        sort: str | None = "createdAt",
        direction: str | None = "desc",
    ) -> LoanPageResult:
        size = settings.default_page_size if size is None else size
        field_errors: dict[str, str] = {}
        if page < 0:
            field_errors["page"] = "Page must not be negative"
        if size < 1:
            field_errors["size"] = "Size must be at least 1"
        sort_key = sort or "createdAt"
        column = SORT_FIELDS.get(sort_key)
        if column is None:
            field_errors["sort"] = f"Unsupported sort field: {sort_key}"
        direction_key = (direction or "desc").lower()
        if direction_key not in {"asc", "desc"}:
            field_errors["direction"] = "Direction must be asc or desc"
        status_filter = None
        if status is not None:
            status_filter = parse_loan_status(status)
            if status_filter is None:
                field_errors["status"] = f"Invalid status: {status}"
        errors.raise_for_errors(field_errors, "Invalid list parameters")
        size = min(size, settings.max_page_size)

        # Filter at the store before paging so totals stay consistent across pages
        conditions = []
        if status_filter is not None:
            conditions.append(Loan.status == status_filter.value)

        count_stmt = select(func.count()).select_from(Loan).where(*conditions)
        total = int((await self.db.execute(count_stmt)).scalar_one())

        descending = direction_key == "desc"
        stmt = (
            select(Loan)
            .where(*conditions)
            .order_by(
                column.desc() if descending else column.asc(),
                Loan.id.desc() if descending else Loan.id.asc(),
            )
            .limit(size)
            .offset(page * size)
        )
        items = list((await self.db.execute(stmt)).scalars().all())
        return LoanPageResult(items=items, total=total, page=page, size=size)

    async def get_loan(self, loan_id: int) -> Loan:
        return await self._get_loan_or_404(loan_id)

    async def approve_loan(
        self, loan_id: int, reviewer_email: str, decision: Any, review_comment: Any
    ) -> Loan:
        return await self._review(loan_id, reviewer_email, decision, review_comment, LoanStatus.ACCEPTED)

    async def reject_loan(
        self, loan_id: int, reviewer_email: str, decision: Any, review_comment: Any
    ) -> Loan:
        return await self._review(loan_id, reviewer_email, decision, review_comment, LoanStatus.REJECTED)

    async def _review(
        self,
        loan_id: int,
        reviewer_email: str,
        decision: Any,
        review_comment: Any,
        target: LoanStatus,
    ) -> Loan:
        verb = "approving" if target is LoanStatus.ACCEPTED else "rejecting"
        logger.info("Manager %s %s loan %s", reviewer_email, verb, loan_id)
        loan = await self._get_loan_or_404(loan_id)
        reviewer = await self._get_user_or_404(reviewer_email)
        if parse_role(reviewer.role) is not Role.MANAGER:
            raise errors.AccessDeniedError("Only managers can review loans")

        if not isinstance(decision, str) or decision.upper() != target.value:
            purpose = "approval" if target is LoanStatus.ACCEPTED else "rejection"
            message = f"Status must be {target.value} for {purpose}"
            raise errors.ValidationError(message, errors={"status": message})
        errors.raise_for_errors(validation.validate_review(decision, review_comment))

        if loan.status != LoanStatus.PENDING.value:
            raise errors.BusinessConflictError(
                f"Loan {loan_id} has already been reviewed ({loan.status})",
                code="INVALID_STATE",
            )

        loan.status = target.value
        loan.reviewed_by_id = reviewer.id
        loan.reviewed_by = reviewer
        loan.review_comment = review_comment
        await self._commit()
        await self.db.refresh(loan)
        logger.info("Loan %s %s by manager %s", loan_id, target.value.lower(), reviewer_email)
        audit_event("loan.reviewed", actor=reviewer_email, loan_id=loan.id, status=loan.status)
        return loan

    async def update_loan(
        self,
        loan_id: int,
        caller_email: str,
        amount: Any = None,
        term: Any = None,
        purpose: Any = None,
    ) -> Loan:
        logger.info("User %s updating loan %s", caller_email, loan_id)
        loan = await self._get_loan_or_404(loan_id)
        self._ensure_owner_and_pending(loan, caller_email, "update")
        errors.raise_for_errors(validation.validate_loan_update(amount, term, purpose))

        if amount is not None:
            loan.amount = _money(amount)
        if term is not None:
            loan.term = term
        if purpose is not None:
            loan.purpose = purpose.strip()
        await self._commit()
        await self.db.refresh(loan)
        logger.info("Loan %s updated by user %s", loan_id, caller_email)
        audit_event("loan.updated", actor=caller_email, loan_id=loan.id, amount=str(loan.amount), term=loan.term)
        return loan

    async def delete_loan(self, loan_id: int, caller_email: str) -> None:
        logger.info("User %s deleting loan %s", caller_email, loan_id)
        loan = await self._get_loan_or_404(loan_id)
        self._ensure_owner_and_pending(loan, caller_email, "delete")
        await self.db.delete(loan)
        await self._commit()
        logger.info("Loan %s deleted by user %s", loan_id, caller_email)
        audit_event("loan.deleted", actor=caller_email, loan_id=loan_id)

    async def list_mine(self, owner_email: str) -> list[Loan]:
        owner = await self._get_user_or_404(owner_email, allow_deleted=True)
        stmt = (
            select(Loan)
            .where(Loan.user_id == owner.id)
            .order_by(Loan.created_at.desc(), Loan.id.desc())
        )
        return list((await self.db.execute(stmt)).scalars().all())
