"""Categorization rules API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bankfeeds.api.deps import TenantContext, get_db, get_tenant_context
from bankfeeds.schemas.categorization_rule import RuleCreate, RuleResponse, RuleUpdate
from bankfeeds.services.rule_service import RuleService

router = APIRouter()


@router.get("", response_model=list[RuleResponse])
async def list_rules(
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """List the company's categorization rules, highest priority first."""
    service = RuleService(db)
    return await service.list_rules(tenant.company_id)


@router.post("", response_model=RuleResponse, status_code=201)
async def create_rule(
    data: RuleCreate,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Create a categorization rule."""
    service = RuleService(db)
    return await service.create_rule(tenant.company_id, tenant.user_id, data)


@router.patch("/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: int,
    data: RuleUpdate,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Update an existing categorization rule."""
    service = RuleService(db)
    return await service.update_rule(tenant.company_id, rule_id, data)


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Delete a categorization rule."""
    service = RuleService(db)
    await service.delete_rule(tenant.company_id, rule_id)
