from .waitlist import (
    AdminUserList,
    AdminWaitlistStats,
    AdminWaitlistUser,
    Pagination,
)

__all__ = [
    "AdminUserList",
    "AdminWaitlistStats",
    "AdminWaitlistUser",
    "Pagination",
]
