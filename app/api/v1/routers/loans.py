from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response

from app.api import deps
from app.core import errors
from app.core.permissions import PermissionCode
from app.core.settings import settings
from app.models import User
from app.schemas.loan import (
    LoanApplicationRequest,
    LoanOut,
    LoanPage,
    LoanReviewRequest,
    LoanUpdateRequest,
)
from app.services import authz, validation
from app.services.loans import LoanService

router = APIRouter(prefix="/loans", tags=["loans"])


@router.post("/apply", response_model=LoanOut, summary="Submit a loan application")
async def apply_for_loan(
    payload: LoanApplicationRequest,
    current_user: User = Depends(deps.require_permission(PermissionCode.LOAN_APPLY)),
    loans: LoanService = Depends(deps.get_loan_service),
) -> LoanOut:
    errors.raise_for_errors(
        validation.validate_loan_application(payload.amount, payload.term, payload.purpose)
    )
    loan = await loans.apply_for_loan(
        current_user.email, payload.amount, payload.term, payload.purpose
    )
    return LoanOut.from_loan(loan)


@router.get("", response_model=LoanPage, summary="List loans (paged)")
async def list_loans(
    page: int = Query(0, ge=0),
    size: int = Query(settings.default_page_size, ge=1),
    status_filter: str | None = Query(None, alias="status"),
    sort: str = Query("createdAt"),
    direction: str = Query("desc"),
    _: User = Depends(deps.require_permission(PermissionCode.LOAN_VIEW_ALL)),
    loans: LoanService = Depends(deps.get_loan_service),
) -> LoanPage:
    result = await loans.list_loans(
        page=page, size=size, status=status_filter, sort=sort, direction=direction
    )
    return LoanPage(
        items=[LoanOut.from_loan(loan) for loan in result.items],
        total=result.total,
        page=result.page,
        size=result.size,
        total_pages=result.total_pages,
    )


@router.get("/my", response_model=list[LoanOut], summary="List the caller's loans")
async def list_my_loans(
    current_user: User = Depends(deps.require_permission(PermissionCode.LOAN_VIEW_OWN)),
    loans: LoanService = Depends(deps.get_loan_service),
) -> list[LoanOut]:
    return [LoanOut.from_loan(loan) for loan in await loans.list_mine(current_user.email)]


@router.get("/{loan_id}", response_model=LoanOut, summary="Get a loan")
async def get_loan(
    loan_id: int,
    current_user: User = Depends(deps.require_authenticated_user),
    loans: LoanService = Depends(deps.get_loan_service),
) -> LoanOut:
    loan = await loans.get_loan(loan_id)
    if not await authz.can_view_loan(current_user, loan.user_id):
        raise errors.AccessDeniedError("You can only view your own loans")
    return LoanOut.from_loan(loan)


@router.post("/{loan_id}/approve", response_model=LoanOut, summary="Approve a pending loan")
async def approve_loan(
    loan_id: int,
    payload: LoanReviewRequest,
    current_user: User = Depends(deps.require_permission(PermissionCode.LOAN_REVIEW)),
    loans: LoanService = Depends(deps.get_loan_service),
) -> LoanOut:
    errors.raise_for_errors(validation.validate_review(payload.status, payload.review_comment))
    loan = await loans.approve_loan(
        loan_id, current_user.email, payload.status, payload.review_comment
    )
    return LoanOut.from_loan(loan)


@router.post("/{loan_id}/reject", response_model=LoanOut, summary="Reject a pending loan")
async def reject_loan(
    loan_id: int,
    payload: LoanReviewRequest,
    current_user: User = Depends(deps.require_permission(PermissionCode.LOAN_REVIEW)),
    loans: LoanService = Depends(deps.get_loan_service),
) -> LoanOut:
    errors.raise_for_errors(validation.validate_review(payload.status, payload.review_comment))
    loan = await loans.reject_loan(
        loan_id, current_user.email, payload.status, payload.review_comment
    )
    return LoanOut.from_loan(loan)


@router.patch("/{loan_id}", response_model=LoanOut, summary="Update a pending loan")
async def update_loan(
    loan_id: int,
    payload: LoanUpdateRequest,
    current_user: User = Depends(deps.require_permission(PermissionCode.LOAN_UPDATE_OWN)),
    loans: LoanService = Depends(deps.get_loan_service),
) -> LoanOut:
    errors.raise_for_errors(
        validation.validate_loan_update(
            payload.amount, payload.term, payload.purpose, require_purpose=True
        )
    )
    loan = await loans.update_loan(
        loan_id,
        current_user.email,
        amount=payload.amount,
        term=payload.term,
        purpose=payload.purpose,
    )
    return LoanOut.from_loan(loan)


@router.delete("/{loan_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a pending loan")
async def delete_loan(
    loan_id: int,
    current_user: User = Depends(deps.require_permission(PermissionCode.LOAN_DELETE_OWN)),
    loans: LoanService = Depends(deps.get_loan_service),
) -> Response:
    await loans.delete_loan(loan_id, current_user.email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
