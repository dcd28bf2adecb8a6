"""Domain enumerations for the HOA services marketplace.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class Role(str, Enum):
    """Role carried by an authenticated principal."""

    LEADER = "LEADER"
    HOME_OWNER = "HOME_OWNER"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"
    ADMIN = "ADMIN"


class PrincipalType(str, Enum):
    """Which table a principal's id points at."""

    USER = "user"
    SERVICE_PROVIDER = "service_provider"


class JobType(str, Enum):
    """Kind of work request."""

    HOME_SERVICE = "HOME_SERVICE"
    COMMUNITY_SERVICE = "COMMUNITY_SERVICE"


class JobStatus(str, Enum):
    """Status of a job through its lifecycle."""

    SENT_TO_LEADER = "SENT_TO_LEADER"
    POSTED_BY_LEADER = "POSTED_BY_LEADER"
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    CANCELLED = "CANCELLED"


class BidStatus(str, Enum):
    """Status of a service provider's bid."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
