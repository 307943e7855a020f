from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

class SwapCreate(BaseModel):
    target_id: int
    assignment_type: str
    original_assignment_id: int
    proposed_assignment_id: Optional[int] = None
    reason: str

class SwapStatusUpdate(BaseModel):
    status: str
    reviewer_notes: Optional[str] = None

class SwapOut(BaseModel):
    id: int
    requester_id: int
    requester_name: Optional[str] = None
    target_id: int
    target_name: Optional[str] = None
    assignment_type: str
    original_assignment_id: int
    proposed_assignment_id: Optional[int] = None
    assignment_title: Optional[str] = None
    assignment_subtype: Optional[str] = None
    course_id: Optional[int] = None
    reason: str
    status: str
    reviewer_id: Optional[int] = None
    reviewer_name: Optional[str] = None
    reviewer_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class OwnershipChangeOut(BaseModel):
    assignment_id: int
    task_id: int
    previous_owner_id: int
    new_owner_id: int

class SwapReviewOut(BaseModel):
    message: str
    swap: SwapOut
    changes: List[OwnershipChangeOut] = []

class EligibleTargetOut(BaseModel):
    id: int
    full_name: str
    university_id: Optional[str] = None
    email: str

    class Config:
        from_attributes = True

class SwapStatisticsOut(BaseModel):
    total_swaps: int
    approved: int
    rejected: int
    pending: int
    task_swaps: int
    exam_swaps: int
