"""Job state machine: validates the engine-driven job status transitions.

Initial status is chosen at creation by the routing matrix in JobService.
After that the engine only moves a job along TRANSITION_MAP. The leader's
free-form status overwrite (JobService.update_status) bypasses this map.
"""

from hoa_platform.domain.enums import JobStatus, JobType, Role
from hoa_platform.services.errors import InvalidInputError


class InvalidTransitionError(InvalidInputError):
    """Raised when a job status transition is not allowed."""

    def __init__(
        self,
        current_status: JobStatus,
        target_status: JobStatus,
        reason: str,
    ):
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        super().__init__(reason)


# ---------------------------------------------------------------------------
# Transition map: from_status -> {to_status: set_of_allowed_actor_roles}
# ---------------------------------------------------------------------------

S = JobStatus

TRANSITION_MAP: dict[JobStatus, dict[JobStatus, set[Role]]] = {
    S.SENT_TO_LEADER: {
        S.POSTED_BY_LEADER: {Role.LEADER},
        S.CANCELLED: {Role.LEADER},
    },
    S.OPEN: {
        # Driven by accepting a bid
        S.IN_PROGRESS: {Role.LEADER},
    },
}

# Only these job types may leave SENT_TO_LEADER
REVIEW_JOB_TYPES: set[JobType] = {JobType.COMMUNITY_SERVICE}

TERMINAL_STATES: set[JobStatus] = {
    S.POSTED_BY_LEADER,
    S.IN_PROGRESS,
    S.CANCELLED,
}

# Jobs a provider can bid on and a leader can still edit or delete
EDITABLE_STATES: set[JobStatus] = {S.OPEN}

# Jobs shown on the public board
LISTED_STATES: set[JobStatus] = {S.OPEN, S.POSTED_BY_LEADER}


def initial_status(job_type: JobType, creator_role: Role) -> JobStatus:
    """Status a newly created job starts in."""
    if job_type == JobType.COMMUNITY_SERVICE and creator_role == Role.HOME_OWNER:
        return S.SENT_TO_LEADER
    return S.OPEN


class JobStateMachine:
    """Validates job state transitions."""

    def validate_transition(
        self,
        current_status: JobStatus,
        target_status: JobStatus,
        actor: Role,
        job_type: JobType | None = None,
    ) -> bool:
        """Return True if the transition is valid. Raise InvalidTransitionError if not."""
        allowed_targets = TRANSITION_MAP.get(current_status)
        if allowed_targets is None:
            raise InvalidTransitionError(
                current_status,
                target_status,
                f"Job is not in a status that allows changes (status={current_status.value})",
            )

        if target_status not in allowed_targets:
            raise InvalidTransitionError(
                current_status,
                target_status,
                f"Transition from {current_status.value} to {target_status.value} is not allowed",
            )

        if actor not in allowed_targets[target_status]:
            raise InvalidTransitionError(
                current_status,
                target_status,
                f"Role {actor.value} is not permitted for this transition",
            )

        if current_status == S.SENT_TO_LEADER and job_type not in REVIEW_JOB_TYPES:
            raise InvalidTransitionError(
                current_status,
                target_status,
                "Only community service jobs can be approved or rejected",
            )

        return True

    def get_allowed_transitions(self, current_status: JobStatus, actor: Role) -> list[JobStatus]:
        targets = TRANSITION_MAP.get(current_status, {})
        return [status for status, actors in targets.items() if actor in actors]
