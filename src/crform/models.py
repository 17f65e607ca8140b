"""Records returned by the change-request service, and role checks over them."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .enums import ApprovalStatus, ExecutionStatus, ReviewDecision


class User(BaseModel):
    user_id: int = 0
    username: str = ""
    email: str = ""
    is_super_manager: bool = False
    is_gateway_editor: bool = False
    team_memberships: list[TeamMembership] = Field(default_factory=list)


class Team(BaseModel):
    team_id: int = 0
    name: str = ""
    members: list[TeamMembership] = Field(default_factory=list)


class TeamMembership(BaseModel):
    user_id: int
    team_id: int
    user: Optional[User] = None
    team: Optional[Team] = None


class Review(BaseModel):
    review_id: int
    cr_id: int
    sm_user_id: int
    review_decision: ReviewDecision
    reviewed_at: Optional[datetime] = None


class Comment(BaseModel):
    comment_id: int
    cr_id: int
    user_id: int
    comment_text: str
    created_at: Optional[datetime] = None
    user: Optional[User] = None


class HistoryEntry(BaseModel):
    history_id: int
    cr_id: int
    changed_by_user_id: int
    event_type: str
    old_status: Optional[str] = None
    new_status: str = ""
    timestamp: Optional[datetime] = None
    changed_by: Optional[User] = None


class ChangeRequest(BaseModel):
    cr_id: int
    requester_user_id: int
    requester_team_id: int
    title: str
    config_changes_payload: str = ""
    created_at: Optional[datetime] = None
    approval_status: ApprovalStatus
    execution_status: ExecutionStatus
    requester_user: Optional[User] = None
    requester_team: Optional[Team] = None
    reviews: list[Review] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    history: list[HistoryEntry] = Field(default_factory=list)


class AuthResult(BaseModel):
    token: str
    user: User


User.model_rebuild()
Team.model_rebuild()


def can_edit(change_request: ChangeRequest, user: User | None) -> bool:
    """Only the requester may edit, and only until the request is approved."""
    if user is None:
        return False
    return (
        change_request.requester_user_id == user.user_id
        and change_request.approval_status != ApprovalStatus.APPROVED
    )


def can_review(change_request: ChangeRequest, user: User | None) -> bool:
    return (
        user is not None
        and user.is_super_manager
        and change_request.approval_status == ApprovalStatus.PENDING_APPROVAL
    )


def can_execute(change_request: ChangeRequest, user: User | None) -> bool:
    return (
        user is not None
        and user.is_gateway_editor
        and change_request.approval_status == ApprovalStatus.APPROVED
    )
