from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from storefront.context import AppContext, get_context

router = APIRouter(tags=["health"])


@router.get("/health", operation_id="health_v1")
def health(ctx: AppContext = Depends(get_context)):
    return {
        "status": "ok",
        "app": ctx.settings.app_name,
        "version": ctx.settings.app_version,
        "time": datetime.now(timezone.utc).isoformat(),
    }
