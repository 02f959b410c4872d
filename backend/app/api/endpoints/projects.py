from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import CurrentUser, get_current_user
from app.models.user_project import UserProject
from app.schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate
from app.services.subscriptions import utcnow


router = APIRouter(dependencies=[Depends(get_current_user)])


def _get_owned_project(db: Session, project_id: str, user_id: str) -> UserProject:
    project = (
        db.query(UserProject)
        .filter(UserProject.id == project_id, UserProject.user_id == user_id)
        .first()
    )
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.get("/projects", response_model=List[ProjectResponse])
async def list_projects(db: Session = Depends(get_db), current_user: CurrentUser = Depends(get_current_user)):
    return (
        db.query(UserProject)
        .filter(UserProject.user_id == current_user.id)
        .order_by(UserProject.last_modified.desc(), UserProject.created_at.desc())
        .all()
    )


@router.post("/projects", response_model=ProjectResponse)
async def create_project(
    body: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    now = utcnow()
    project = UserProject(
        user_id=current_user.id,
        name=body.name.strip() or body.name,
        thumbnail_url=body.thumbnail_url,
        project_data=body.project_data,
        last_modified=now,
        created_at=now,
    )
    try:
        db.add(project)
        db.commit()
        db.refresh(project)
    except Exception:
        db.rollback()
        raise
    return project


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    project = _get_owned_project(db, project_id, current_user.id)
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if field == "name" and not value:
            continue
        setattr(project, field, value)
    project.last_modified = utcnow()
    try:
        db.commit()
        db.refresh(project)
    except Exception:
        db.rollback()
        raise
    return project


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(
    project_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    project = _get_owned_project(db, project_id, current_user.id)
    try:
        db.delete(project)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return Response(status_code=204)
