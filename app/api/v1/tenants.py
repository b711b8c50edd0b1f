"""Current-tenant endpoint."""

from fastapi import APIRouter

from app.api.deps import Context
from app.models.tenant import TenantRead

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.get("/me", response_model=TenantRead, summary="Get current tenant info")
async def get_current_tenant(ctx: Context) -> TenantRead:
    """Returns the tenant the verified token is bound to."""
    return TenantRead.model_validate(ctx.tenant)
