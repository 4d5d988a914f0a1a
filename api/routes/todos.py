"""
Project and todo routes for the Taskboard API.

Every query is filtered by the session user. Rows owned by someone else are
indistinguishable from missing rows: lists leave them out and mutations
report 404.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.core.security import CurrentUser
from api.models.database import Project, Todo, get_db
from api.models.schemas import (
    ErrorResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    TodoCreate,
    TodoResponse,
    TodoUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/todos", tags=["Projects & Todos"])

AUTH_RESPONSES = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
}
NOT_FOUND_RESPONSES = {
    **AUTH_RESPONSES,
    404: {"description": "Not found or not owned by the session user", "model": ErrorResponse},
}


def _not_found(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{what} not found",
    )


# =============================================================================
# Projects
# =============================================================================

@router.get(
    "/projects",
    response_model=list[ProjectResponse],
    responses=AUTH_RESPONSES,
    summary="List projects",
    description="The session user's projects ordered by id.",
)
async def list_projects(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[ProjectResponse]:
    result = await db.execute(
        select(Project)
        .where(Project.user_id == current_user.id)
        .order_by(Project.id)
    )
    return [ProjectResponse.model_validate(p) for p in result.scalars().all()]


@router.post(
    "/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    responses=AUTH_RESPONSES,
    summary="Create project",
)
async def create_project(
    project_data: ProjectCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProjectResponse:
    """Create a project owned by the session user and return it."""
    project = Project(name=project_data.name, user_id=current_user.id)
    db.add(project)
    await db.commit()
    await db.refresh(project)

    logger.debug(f"User {current_user.id} created project {project.id}")
    return ProjectResponse.model_validate(project)


@router.patch(
    "/projects/{project_id}",
    response_model=bool,
    responses=NOT_FOUND_RESPONSES,
    summary="Rename project",
)
async def update_project(
    project_id: int,
    project_data: ProjectUpdate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> bool:
    result = await db.execute(
        update(Project)
        .where(Project.id == project_id, Project.user_id == current_user.id)
        .values(name=project_data.name)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise _not_found("Project")

    await db.commit()
    return True


@router.delete(
    "/projects/{project_id}",
    response_model=bool,
    responses=NOT_FOUND_RESPONSES,
    summary="Delete project",
    description="Delete a project together with its todos.",
)
async def delete_project(
    project_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> bool:
    await db.execute(
        delete(Todo).where(
            Todo.project_id == project_id,
            Todo.user_id == current_user.id,
        )
    )
    result = await db.execute(
        delete(Project).where(
            Project.id == project_id,
            Project.user_id == current_user.id,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise _not_found("Project")

    await db.commit()
    logger.debug(f"User {current_user.id} deleted project {project_id}")
    return True


# =============================================================================
# Todos
# =============================================================================

@router.get(
    "",
    response_model=list[TodoResponse],
    responses=AUTH_RESPONSES,
    summary="List todos of a project",
    description="The session user's todos in one project, ordered by id.",
)
async def list_todos(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    project_id: int = Query(..., description="Project to list"),
) -> list[TodoResponse]:
    result = await db.execute(
        select(Todo)
        .where(Todo.project_id == project_id, Todo.user_id == current_user.id)
        .order_by(Todo.id)
    )
    return [TodoResponse.model_validate(t) for t in result.scalars().all()]


@router.post(
    "",
    response_model=TodoResponse,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND_RESPONSES,
    summary="Create todo",
)
async def create_todo(
    todo_data: TodoCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TodoResponse:
    """Create a todo in one of the session user's projects and return it."""
    owned = await db.execute(
        select(Project.id).where(
            Project.id == todo_data.project_id,
            Project.user_id == current_user.id,
        )
    )
    if owned.scalar_one_or_none() is None:
        raise _not_found("Project")

    todo = Todo(
        content=todo_data.content,
        completed=0,
        project_id=todo_data.project_id,
        user_id=current_user.id,
    )
    db.add(todo)
    await db.commit()
    await db.refresh(todo)

    return TodoResponse.model_validate(todo)


@router.patch(
    "/{todo_id}",
    response_model=bool,
    responses=NOT_FOUND_RESPONSES,
    summary="Mark todo complete or incomplete",
)
async def update_todo(
    todo_id: int,
    todo_data: TodoUpdate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> bool:
    result = await db.execute(
        update(Todo)
        .where(Todo.id == todo_id, Todo.user_id == current_user.id)
        .values(completed=todo_data.completed)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise _not_found("Todo")

    await db.commit()
    return True


@router.delete(
    "/{todo_id}",
    response_model=bool,
    responses=NOT_FOUND_RESPONSES,
    summary="Delete todo",
)
async def delete_todo(
    todo_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> bool:
    result = await db.execute(
        delete(Todo).where(Todo.id == todo_id, Todo.user_id == current_user.id)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise _not_found("Todo")

    await db.commit()
    return True
