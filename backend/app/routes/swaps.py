from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_identity
from app.core.errors import Forbidden, NotFound
from app.core.permissions import Identity, can_view_swap
from app.database.deps import get_db
from app.models.swap import SwapRequest
from app.schemas.swap import (
    EligibleTargetOut,
    OwnershipChangeOut,
    SwapCreate,
    SwapOut,
    SwapReviewOut,
    SwapStatisticsOut,
    SwapStatusUpdate,
)
from app.services.assignments import AssignmentRepository
from app.services.eligibility import EligibilityResolver
from app.services.swap_store import SwapRequestStore

router = APIRouter(prefix="/swaps", tags=["Swaps"])


def build_swap_out(swap: SwapRequest, repository: AssignmentRepository) -> SwapOut:
    try:
        info = repository.describe(swap.assignment_type, swap.original_assignment_id)
    except NotFound:
        info = None
    return SwapOut(
        id=swap.id,
        requester_id=swap.requester_id,
        requester_name=swap.requester.full_name if swap.requester else None,
        target_id=swap.target_id,
        target_name=swap.target.full_name if swap.target else None,
        assignment_type=swap.assignment_type,
        original_assignment_id=swap.original_assignment_id,
        proposed_assignment_id=swap.proposed_assignment_id,
        assignment_title=info.title if info else None,
        assignment_subtype=info.subtype if info else None,
        course_id=info.course_id if info else None,
        reason=swap.reason,
        status=swap.status,
        reviewer_id=swap.reviewer_id,
        reviewer_name=swap.reviewer.full_name if swap.reviewer else None,
        reviewer_notes=swap.reviewer_notes,
        created_at=swap.created_at,
        reviewed_at=swap.reviewed_at,
    )


@router.get("/", response_model=list[SwapOut])
def list_swaps(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    repository = AssignmentRepository(db)
    swaps = SwapRequestStore(db, repository=repository).list_visible(identity)
    return [build_swap_out(swap, repository) for swap in swaps]


@router.get("/my-swaps", response_model=list[SwapOut])
def list_my_swaps(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    repository = AssignmentRepository(db)
    swaps = SwapRequestStore(db, repository=repository).list_for_user(identity.user_id)
    return [build_swap_out(swap, repository) for swap in swaps]


@router.get("/statistics", response_model=SwapStatisticsOut)
def read_statistics(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    user_id = None if identity.can_override_swaps else identity.user_id
    return SwapStatisticsOut(**SwapRequestStore(db).statistics(user_id))


@router.get("/eligible-targets/{assignment_id}/{kind}", response_model=list[EligibleTargetOut])
def read_eligible_targets(
    assignment_id: int,
    kind: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    users = EligibilityResolver(db).eligible_targets(identity.user_id, assignment_id, kind)
    return [EligibleTargetOut.model_validate(user) for user in users]


@router.get("/{swap_id}", response_model=SwapOut)
def read_swap(
    swap_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    repository = AssignmentRepository(db)
    swap = SwapRequestStore(db, repository=repository).get(swap_id)
    if not can_view_swap(identity, swap):
        raise Forbidden("You do not have permission to view this swap request")
    return build_swap_out(swap, repository)


@router.post("/", response_model=SwapOut, status_code=status.HTTP_201_CREATED)
def create_swap(
    payload: SwapCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    repository = AssignmentRepository(db)
    store = SwapRequestStore(db, repository=repository)
    swap = store.create(
        requester_id=identity.user_id,
        target_id=payload.target_id,
        kind=payload.assignment_type,
        original_assignment_id=payload.original_assignment_id,
        proposed_assignment_id=payload.proposed_assignment_id,
        reason=payload.reason,
    )
    return build_swap_out(store.get(swap.id), repository)


@router.put("/{swap_id}/status", response_model=SwapReviewOut)
def update_swap_status(
    swap_id: int,
    payload: SwapStatusUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    repository = AssignmentRepository(db)
    store = SwapRequestStore(db, repository=repository)
    review = store.update_status(swap_id, payload.status, identity, payload.reviewer_notes)
    changes = []
    if review.outcome:
        changes = [
            OwnershipChangeOut(
                assignment_id=change.assignment_id,
                task_id=change.task_id,
                previous_owner_id=change.previous_owner_id,
                new_owner_id=change.new_owner_id,
            )
            for change in review.outcome.changes
        ]
    swap = store.get(swap_id)
    return SwapReviewOut(
        message=f"Swap request {swap.status}",
        swap=build_swap_out(swap, repository),
        changes=changes,
    )


@router.delete("/{swap_id}")
def delete_swap(
    swap_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    SwapRequestStore(db).delete(swap_id, identity)
    return {"detail": "Swap request deleted"}
