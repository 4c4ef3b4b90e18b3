# backend/chatwidget/api/widget.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from .auth import verify_operator

DEMO_TENANT_ID = "demo"

DEMO_CONFIG = schemas.WidgetConfigOut(
    business_name="Demo Business",
    bot_name="Botsy",
    greeting="Hi! I'm Botsy. How can I help you today?",
    primary_color="#CCFF00",
    position="bottom-right",
    is_enabled=True,
    logo_url=None,
    widget_size="medium",
    animation_style="scale",
)

NO_STORE = {"Cache-Control": "no-store, no-cache, must-revalidate"}

router = APIRouter()


def config_from_tenant(tenant: models.Tenant) -> schemas.WidgetConfigOut:
    return schemas.WidgetConfigOut(
        business_name=tenant.business_name,
        bot_name=tenant.bot_name,
        greeting=tenant.greeting,
        primary_color=tenant.primary_color,
        position=tenant.position,
        is_enabled=tenant.is_enabled,
        logo_url=tenant.logo_url,
        widget_size=tenant.widget_size,
        animation_style=tenant.animation_style,
    )


def _config_response(config: schemas.WidgetConfigOut) -> JSONResponse:
    body = schemas.WidgetConfigResponse(success=True, config=config)
    return JSONResponse(body.model_dump(by_alias=True, mode="json"), headers=NO_STORE)


@router.get("/widget-config/{tenant_id}", response_model=schemas.WidgetConfigResponse)
def get_widget_config(tenant_id: str, db: Session = Depends(get_db)):
    if tenant_id == DEMO_TENANT_ID:
        return _config_response(DEMO_CONFIG)

    tenant = db.get(models.Tenant, tenant_id)
    if tenant is None:
        return JSONResponse(
            {"success": False, "error": "Tenant not found"},
            status_code=404,
            headers=NO_STORE,
        )
    return _config_response(config_from_tenant(tenant))


@router.put("/widget-config/{tenant_id}", response_model=schemas.WidgetConfigResponse)
def put_widget_config(
        tenant_id: str,
        body: schemas.WidgetConfigOut,
        db: Session = Depends(get_db),
        _: str = Depends(verify_operator)
):
    tenant = db.get(models.Tenant, tenant_id)
    if tenant is None:
        tenant = models.Tenant(id=tenant_id)
        db.add(tenant)

    for field, value in body.model_dump().items():
        setattr(tenant, field, value)
    db.commit()
    return _config_response(config_from_tenant(tenant))
