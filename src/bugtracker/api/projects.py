"""Project API routes.

Learn: Each handler follows the same order:
  parse ids (400) → load entity (404) → policy check (403) → service call.
Authorization never happens before the entity is known to exist, and
nothing is written before the policy has said yes.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.auth.dependencies import CurrentIdentity, get_current_user, get_policy
from bugtracker.auth.policy import Action, Policy, ProjectRef
from bugtracker.db.engine import get_db
from bugtracker.db.models import Project
from bugtracker.errors import NotFound
from bugtracker.schemas.common import MessageResponse
from bugtracker.schemas.project import ProjectCreate, ProjectRead, ProjectUpdate
from bugtracker.services.cascade import CascadeManager
from bugtracker.services.ids import parse_id
from bugtracker.services.project_service import ProjectService

router = APIRouter(prefix="/projects")


def _svc(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


async def _load(svc: ProjectService, project_id: str) -> Project:
    project = await svc.get_project(parse_id(project_id, "Project"))
    if not project:
        raise NotFound("Project not found")
    return project


@router.get("", response_model=list[ProjectRead])
async def list_projects(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProjectService = Depends(_svc),
):
    """Projects the caller created or is a member of."""
    return await svc.list_for_user(identity.id)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
    svc: ProjectService = Depends(_svc),
):
    project = await _load(svc, project_id)
    policy.authorize(identity, Action.VIEW_PROJECT, ProjectRef.from_model(project))
    return project


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProjectService = Depends(_svc),
):
    """Create a project. The caller becomes its creator and a "manager" member."""
    return await svc.create_project(
        creator_id=identity.id,
        name=body.name,
        description=body.description,
        status=body.status,
        priority=body.priority,
        members=body.members,
    )


@router.put("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
    svc: ProjectService = Depends(_svc),
):
    project = await _load(svc, project_id)
    policy.authorize(identity, Action.UPDATE_PROJECT, ProjectRef.from_model(project))
    return await svc.update_project(
        project,
        name=body.name,
        description=body.description,
        status=body.status,
        priority=body.priority,
        members=body.members,
    )


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
    svc: ProjectService = Depends(_svc),
):
    """Delete a project together with its issues and their comments."""
    project = await _load(svc, project_id)
    policy.authorize(identity, Action.DELETE_PROJECT, ProjectRef.from_model(project))
    await CascadeManager(svc.db).delete_project(project.id)
    return {"msg": "Project removed successfully and associated issues deleted"}
