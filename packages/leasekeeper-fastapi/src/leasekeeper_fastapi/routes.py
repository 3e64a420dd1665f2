"""FastAPI routes exposing leadership status."""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from leasekeeper.usecases.lease_candidate import LeaseCandidate


def _status(candidate: LeaseCandidate) -> dict[str, Any]:
    holder = candidate.current_holder()
    settings = candidate.settings
    return {
        "election_key": settings.election_key,
        "candidate_id": settings.candidate_id,
        "belief": candidate.current_belief().value,
        "is_leader": candidate.is_leader(),
        "holder_id": holder.holder_id if holder is not None else None,
        "expires_at": holder.expires_at if holder is not None else None,
        "leader_transitions": holder.leader_transitions if holder is not None else None,
    }


def create_leadership_router(candidate: LeaseCandidate) -> APIRouter:
    """Create FastAPI router with leadership endpoints.

    GET /leader reports this candidate's belief and the last observed lease
    holder. GET /leader/ready answers 200 only on the leader and 503
    elsewhere, so it can serve as a readiness probe that routes traffic to
    the leader alone.

    Args:
        candidate: The running LeaseCandidate of this process.

    Returns:
        APIRouter configured with the /leader endpoints
    """
    router = APIRouter()

    @router.get("/leader")
    def get_leader() -> dict[str, Any]:
        """Get leadership status.

        Returns:
            dict with keys: election_key, candidate_id, belief, is_leader,
            holder_id, expires_at, leader_transitions
        """
        return _status(candidate)

    @router.get("/leader/ready")
    def get_leader_ready() -> JSONResponse:
        """Answer 200 on the leader, 503 on followers."""
        body = _status(candidate)
        status_code = 200 if body["is_leader"] else 503
        return JSONResponse(content=body, status_code=status_code)

    return router
