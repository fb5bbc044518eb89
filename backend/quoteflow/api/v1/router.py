from fastapi import APIRouter

from quoteflow.api.v1 import approval_routes, approvals

api_router = APIRouter()

api_router.include_router(approvals.router, prefix="/approvals", tags=["approvals"])
api_router.include_router(approval_routes.router, prefix="/approval-routes", tags=["approval-routes"])
