"""
Action API Routes

CRUD on the current user's actions, status changes and a dry-run of the
extraction engine.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from api.auth.service import get_current_user
from api.models.actions import (
    ActionCreateRequest,
    ActionListResponse,
    ActionResponse,
    ExtractRequest,
    ExtractResponse,
    ExtractedActionResponse,
    ManualActionRequest,
)
from api.services.action_service import ActionService, get_action_service
from inbox_actions.email_processing.models import ActionStatus, ActionType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/actions", tags=["Actions"])


@router.get("", response_model=ActionListResponse, summary="List the current user's actions")
async def list_actions(
    status_filter: Optional[ActionStatus] = Query(None, alias="status", description="Filter by status"),
    type_filter: Optional[ActionType] = Query(None, alias="type", description="Filter by action type"),
    user: Dict[str, Any] = Depends(get_current_user),
    action_service: ActionService = Depends(get_action_service),
):
    """TODO first, then by due date (undated last), then newest."""
    return await action_service.list_actions(user["id"], status=status_filter, action_type=type_filter)


@router.post("", response_model=ActionResponse, status_code=status.HTTP_201_CREATED)
async def create_action(
    request: ActionCreateRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    action_service: ActionService = Depends(get_action_service),
):
    return await action_service.create_action(user["id"], request.model_dump())


@router.post("/manual", response_model=ActionResponse, status_code=status.HTTP_201_CREATED)
async def create_manual_action(
    request: ManualActionRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    action_service: ActionService = Depends(get_action_service),
):
    return await action_service.create_manual_action(user, request.model_dump())


@router.post("/extract", response_model=ExtractResponse, summary="Detect actions in an email without saving them")
async def extract_actions(
    request: ExtractRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    action_service: ActionService = Depends(get_action_service),
):
    actions = action_service.preview_extraction(
        sender=request.sender,
        subject=request.subject,
        body=request.body,
        received_at=request.received_at,
    )
    return ExtractResponse(
        actions=[
            ExtractedActionResponse(
                title=action.title,
                type=action.type,
                source_sentence=action.source_sentence,
                due_date=action.due_date,
            )
            for action in actions
        ],
        count=len(actions),
    )


@router.get("/{action_id}", response_model=ActionResponse)
async def get_action(
    action_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    action_service: ActionService = Depends(get_action_service),
):
    return await action_service.get_action(user["id"], action_id)


@router.delete("/{action_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_action(
    action_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    action_service: ActionService = Depends(get_action_service),
):
    await action_service.delete_action(user["id"], action_id)


@router.post("/{action_id}/done", response_model=ActionResponse)
async def mark_done(
    action_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    action_service: ActionService = Depends(get_action_service),
):
    return await action_service.set_status(user["id"], action_id, ActionStatus.DONE)


@router.post("/{action_id}/ignore", response_model=ActionResponse)
async def mark_ignored(
    action_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    action_service: ActionService = Depends(get_action_service),
):
    return await action_service.set_status(user["id"], action_id, ActionStatus.IGNORED)
