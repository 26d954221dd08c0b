from enum import Enum


class Role(str, Enum):
    """Account role used at every authorization checkpoint."""

    ADMIN = "admin"
    EMPLOYEE = "employee"
