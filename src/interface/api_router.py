"""HTTP interface for tasks, completions and family members."""

import logging
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Body, FastAPI, Header, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from src.core.config import constants
from src.core.errors import EngineError, ValidationError, error_response_for
from src.domain.completion import Completion, CompletionFilter, CompletionInput
from src.domain.family_member import FamilyMember, FamilyMemberInput
from src.domain.task import Task, TaskDefinition
from src.services import completion_service, family_member_service, task_service


logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks"])

AccountId = Annotated[str, Header(alias=constants.ACCOUNT_HEADER, min_length=1)]
JsonBody = Annotated[dict[str, Any], Body()]


def _task_definition(account_id: str, payload: dict[str, Any]) -> TaskDefinition:
    return TaskDefinition.model_validate({**payload, "accountId": account_id})


# Tasks


@router.get("/tasks")
async def list_tasks(
    account_id: AccountId,
    is_active: Annotated[bool | None, Query(alias="isActive")] = None,
    family_member_id: Annotated[str | None, Query(alias="familyMemberId")] = None,
    today: Annotated[date | None, Query()] = None,
) -> list[Task]:
    """List tasks with their current status."""
    return await task_service.list_tasks(
        account_id=account_id, is_active=is_active, family_member_id=family_member_id, today=today
    )


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(account_id: AccountId, payload: JsonBody) -> Task:
    """Create a chore or routine together with its assignments or steps."""
    return await task_service.create_task(definition=_task_definition(account_id, payload))


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, account_id: AccountId) -> Task:
    """Get a task by ID."""
    return await task_service.get_task(task_id=task_id, account_id=account_id)


@router.put("/tasks/{task_id}")
async def update_task(task_id: str, account_id: AccountId, payload: JsonBody) -> Task:
    """Replace a task and its whole child collection."""
    return await task_service.update_task(task_id=task_id, definition=_task_definition(account_id, payload))


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, account_id: AccountId) -> Response:
    """Delete a task; its completion history is kept."""
    await task_service.delete_task(task_id=task_id, account_id=account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Completions


@router.get("/completions")
async def list_completions(
    account_id: AccountId,
    task_id: Annotated[str | None, Query(alias="taskId")] = None,
    family_member_id: Annotated[str | None, Query(alias="familyMemberId")] = None,
    start_date: Annotated[date | None, Query(alias="startDate")] = None,
    end_date: Annotated[date | None, Query(alias="endDate")] = None,
) -> list[Completion]:
    """List completions, newest first."""
    filters = CompletionFilter(
        task_id=task_id, family_member_id=family_member_id, start_date=start_date, end_date=end_date
    )
    return await completion_service.list_completions(account_id=account_id, filters=filters)


@router.post("/completions", status_code=status.HTTP_201_CREATED)
async def record_completion(account_id: AccountId, payload: JsonBody) -> Completion:
    """Record that a family member completed a task."""
    completion = CompletionInput.model_validate(payload)
    return await completion_service.record_completion(
        account_id=account_id,
        task_id=completion.task_id,
        family_member_id=completion.family_member_id,
        completed_at=completion.completed_at,
        notes=completion.notes,
    )


@router.delete("/completions/{completion_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_completion(completion_id: str, account_id: AccountId) -> Response:
    """Undo a completion."""
    await completion_service.delete_completion(completion_id=completion_id, account_id=account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Family members


@router.get("/family-members")
async def list_family_members(account_id: AccountId) -> list[FamilyMember]:
    """List family members, default first."""
    return await family_member_service.list_family_members(account_id=account_id)


@router.post("/family-members", status_code=status.HTTP_201_CREATED)
async def create_family_member(account_id: AccountId, payload: JsonBody) -> FamilyMember:
    """Add a family member."""
    member = FamilyMemberInput.model_validate(payload)
    return await family_member_service.create_family_member(account_id=account_id, member=member)


@router.put("/family-members/{member_id}")
async def update_family_member(member_id: str, account_id: AccountId, payload: JsonBody) -> FamilyMember:
    """Rename, recolor or make a member the default."""
    member = FamilyMemberInput.model_validate(payload)
    return await family_member_service.update_family_member(
        account_id=account_id, member_id=member_id, member=member
    )


@router.delete("/family-members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_family_member(member_id: str, account_id: AccountId) -> Response:
    """Remove a family member and their assignments."""
    await family_member_service.delete_family_member(account_id=account_id, member_id=member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Error mapping


def _error_json(exc: Exception) -> JSONResponse:
    response = error_response_for(exc)
    return JSONResponse(content=response.model_dump(), status_code=response.status_code)


async def _handle_engine_error(request: Request, exc: Exception) -> JSONResponse:
    logger.info("request_failed", extra={"path": request.url.path, "error": str(exc)})
    return _error_json(exc)


async def _handle_request_validation(request: Request, exc: Exception) -> JSONResponse:
    details: dict[str, str] = {}
    if isinstance(exc, RequestValidationError):
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
            details.setdefault(field, error["msg"])
    logger.info("request_invalid", extra={"path": request.url.path, "details": details})
    return _error_json(ValidationError(details))


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request_error", extra={"path": request.url.path, "error": str(exc)})
    return _error_json(exc)


def register_error_handlers(app: FastAPI) -> None:
    """Map engine and validation errors to structured JSON responses."""
    app.add_exception_handler(EngineError, _handle_engine_error)
    app.add_exception_handler(PydanticValidationError, _handle_engine_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(RuntimeError, _handle_unexpected)
