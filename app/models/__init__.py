from app.models.loan import Loan
from app.models.user import User

__all__ = [
    "Loan",
    "User",
]
