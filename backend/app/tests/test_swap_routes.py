import asyncio
import json
from datetime import date

import pytest
from fastapi import HTTPException

from app.core.auth import get_current_identity
from app.core.errors import Forbidden, InvalidState, PreconditionFailed
from app.core.security import create_access_token
from app.main import exchange_error_handler
from app.routes.leaves import read_leave_conflicts
from app.routes.swaps import (
    create_swap,
    delete_swap,
    list_my_swaps,
    list_swaps,
    read_eligible_targets,
    read_statistics,
    read_swap,
    update_swap_status,
)
from app.schemas.swap import SwapCreate, SwapStatusUpdate

from factories import create_leave, create_task, create_user, identity_of, owner_of


def test_swap_round_trip_through_routes(db_session):
    requester = create_user(db_session, "Rana Requester")
    target = create_user(db_session, "Gokhan Target")
    outsider = create_user(db_session, "Hale Outsider")
    t1 = create_task(db_session, requester, title="Lab 3 grading")
    t2 = create_task(db_session, target, title="Lab 4 grading")

    created = create_swap(
        payload=SwapCreate(
            target_id=target.id,
            assignment_type="task",
            original_assignment_id=t1.id,
            proposed_assignment_id=t2.id,
            reason="Conference travel",
        ),
        db=db_session,
        identity=identity_of(requester),
    )
    assert created.status == "pending"
    assert created.requester_name == "Rana Requester"
    assert created.target_name == "Gokhan Target"
    assert created.assignment_title == "Lab 3 grading"
    assert created.assignment_subtype == "grading"

    assert [swap.id for swap in list_my_swaps(db=db_session, identity=identity_of(target))] == [created.id]
    assert list_swaps(db=db_session, identity=identity_of(outsider)) == []
    with pytest.raises(Forbidden):
        read_swap(swap_id=created.id, db=db_session, identity=identity_of(outsider))

    review = update_swap_status(
        swap_id=created.id,
        payload=SwapStatusUpdate(status="approved", reviewer_notes="Fine by me"),
        db=db_session,
        identity=identity_of(target),
    )
    assert review.message == "Swap request approved"
    assert review.swap.reviewer_name == "Gokhan Target"
    assert {(change.task_id, change.new_owner_id) for change in review.changes} == {
        (t1.id, target.id),
        (t2.id, requester.id),
    }
    assert owner_of(t1.id) == target.id

    stats = read_statistics(db=db_session, identity=identity_of(requester))
    assert stats.total_swaps == 1
    assert stats.approved == 1

    with pytest.raises(InvalidState):
        update_swap_status(
            swap_id=created.id,
            payload=SwapStatusUpdate(status="approved"),
            db=db_session,
            identity=identity_of(target),
        )


def test_delete_route(db_session):
    requester = create_user(db_session, "Rana")
    target = create_user(db_session, "Gokhan")
    t1 = create_task(db_session, requester)
    created = create_swap(
        payload=SwapCreate(
            target_id=target.id,
            assignment_type="task",
            original_assignment_id=t1.id,
            reason="Sick leave",
        ),
        db=db_session,
        identity=identity_of(requester),
    )

    assert delete_swap(swap_id=created.id, db=db_session, identity=identity_of(requester)) == {
        "detail": "Swap request deleted"
    }
    assert list_swaps(db=db_session, identity=identity_of(requester)) == []


def test_eligible_targets_and_conflicts_routes(db_session):
    requester = create_user(db_session, "Rana")
    create_user(db_session, "Gokhan")
    away = create_user(db_session, "Burak")
    create_leave(db_session, away, date(2025, 4, 10), date(2025, 4, 10))
    task = create_task(db_session, requester, due_date=date(2025, 4, 10))

    targets = read_eligible_targets(
        assignment_id=task.id,
        kind="task",
        db=db_session,
        identity=identity_of(requester),
    )
    assert [target.full_name for target in targets] == ["Gokhan"]

    report = read_leave_conflicts(
        start_date=date(2025, 4, 9),
        end_date=date(2025, 4, 11),
        db=db_session,
        identity=identity_of(requester),
    )
    assert report.has_conflicts
    assert [item.id for item in report.task_conflicts] == [task.id]


@pytest.mark.parametrize(
    "error, status_code, code",
    [
        (PreconditionFailed("Requester assignment not found"), 409, "precondition_failed"),
        (InvalidState("Swap request 1 has already been approved"), 409, "invalid_state"),
        (Forbidden("nope"), 403, "forbidden"),
    ],
)
def test_exchange_errors_render_distinct_codes(error, status_code, code):
    response = asyncio.run(exchange_error_handler(None, error))

    assert response.status_code == status_code
    assert json.loads(response.body) == {"detail": error.message, "code": code}


def test_identity_from_token(db_session):
    staff = create_user(db_session, "Sema", role="staff")
    token = create_access_token({"sub": str(staff.id), "role": staff.role})

    identity = get_current_identity(token=token, db=db_session)

    assert identity.user_id == staff.id
    assert identity.can_override_swaps
    with pytest.raises(HTTPException) as exc_info:
        get_current_identity(token="not-a-token", db=db_session)
    assert exc_info.value.status_code == 401
