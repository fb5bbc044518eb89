"""Approval route administration endpoints (ADMIN only)."""
import uuid
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, selectinload

from quoteflow.core.deps import require_role
from quoteflow.core.exceptions import ApprovalError
from quoteflow.db.session import get_session, get_sync_session
from quoteflow.models.approval_route import ApprovalRoute
from quoteflow.models.document import DocumentType
from quoteflow.models.user import User, UserRole
from quoteflow.schemas.approval_route import (
    ApprovalRouteIn,
    ApprovalRouteListResponse,
    ApprovalRouteOut,
    ApprovalRouteUpdate,
)
from quoteflow.services import routes as route_svc

router = APIRouter()

AdminUser = Annotated[User, Depends(require_role(UserRole.admin))]


def _raise_http(exc: ApprovalError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_dict()) from exc


def _get_route_or_404(db: Session, route_id: uuid.UUID) -> ApprovalRoute:
    route = route_svc.get_route(db, route_id)
    if route is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Route not found.")
    return route


@router.get(
    "",
    response_model=ApprovalRouteListResponse,
    summary="List approval routes (ADMIN)",
)
async def list_routes(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: AdminUser,
    target_entity: DocumentType | None = Query(None),
    include_inactive: bool = Query(False),
):
    stmt = (
        select(ApprovalRoute)
        .options(selectinload(ApprovalRoute.steps))
        .order_by(ApprovalRoute.target_entity, ApprovalRoute.min_amount, ApprovalRoute.name)
    )
    if target_entity is not None:
        stmt = stmt.where(ApprovalRoute.target_entity == target_entity)
    if not include_inactive:
        stmt = stmt.where(ApprovalRoute.is_active.is_(True))
    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar_one()
    result = await db.execute(stmt)
    items = [ApprovalRouteOut.model_validate(r) for r in result.scalars().all()]
    return ApprovalRouteListResponse(items=items, total=total)


@router.post(
    "",
    response_model=ApprovalRouteOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an approval route with its steps (ADMIN)",
)
def create_route(
    body: ApprovalRouteIn,
    db: Annotated[Session, Depends(get_sync_session)],
    current_user: AdminUser,
):
    data = body.model_dump()
    try:
        route = route_svc.create_route(db, created_by=current_user.id, **data)
    except ApprovalError as exc:
        _raise_http(exc)
    return ApprovalRouteOut.model_validate(route)


@router.put(
    "/{route_id}",
    response_model=ApprovalRouteOut,
    summary="Update an approval route; a steps list replaces the whole chain (ADMIN)",
)
def update_route(
    route_id: uuid.UUID,
    body: ApprovalRouteUpdate,
    db: Annotated[Session, Depends(get_sync_session)],
    current_user: AdminUser,
):
    route = _get_route_or_404(db, route_id)
    try:
        route = route_svc.update_route(db, route, body.model_dump(exclude_unset=True))
    except ApprovalError as exc:
        _raise_http(exc)
    return ApprovalRouteOut.model_validate(route)


@router.delete(
    "/{route_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate an approval route (ADMIN)",
)
def delete_route(
    route_id: uuid.UUID,
    db: Annotated[Session, Depends(get_sync_session)],
    current_user: AdminUser,
):
    route = _get_route_or_404(db, route_id)
    route_svc.deactivate_route(db, route)
