"""
Promotions API - FastAPI router for promotion management.
"""
from datetime import datetime, time
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..engine.models import Promotion
from ..engine.pricing_engine import calculate_price
from ..engine.promotion_matcher import calculate_discount
from .state import AppState, get_state

router = APIRouter(prefix="/api/promotions", tags=["promotions"])

# 0 = Sunday ... 6 = Saturday
Weekday = Annotated[int, Field(ge=0, le=6)]


# Pydantic models for API
class TierRulesModel(BaseModel):
    tier_ids: list[str] = Field(default_factory=list)
    min_grams: float = Field(default=0, ge=0)
    max_grams: Optional[float] = Field(default=None, ge=0)


class PromotionCreate(BaseModel):
    """Request model for creating a promotion."""
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    promotion_type: Literal['product', 'category', 'tier', 'global']
    discount_type: Literal['percentage', 'fixed_amount']
    discount_value: float = Field(ge=0)
    target_product_ids: list[str] = Field(default_factory=list)
    target_categories: list[str] = Field(default_factory=list)
    target_tier_rules: Optional[TierRulesModel] = None
    badge_text: Optional[str] = None
    badge_color: Optional[str] = None
    priority: int = 0
    is_active: bool = True
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    days_of_week: list[Weekday] = Field(default_factory=list)
    time_of_day_start: Optional[time] = None
    time_of_day_end: Optional[time] = None


class PromotionUpdate(BaseModel):
    """Request model for updating a promotion."""
    name: Optional[str] = None
    description: Optional[str] = None
    promotion_type: Optional[Literal['product', 'category', 'tier', 'global']] = None
    discount_type: Optional[Literal['percentage', 'fixed_amount']] = None
    discount_value: Optional[float] = Field(default=None, ge=0)
    target_product_ids: Optional[list[str]] = None
    target_categories: Optional[list[str]] = None
    target_tier_rules: Optional[TierRulesModel] = None
    badge_text: Optional[str] = None
    badge_color: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    days_of_week: Optional[list[Weekday]] = None
    time_of_day_start: Optional[time] = None
    time_of_day_end: Optional[time] = None


class PromotionResponse(BaseModel):
    """Response model for a promotion."""
    id: str
    name: str
    description: Optional[str]
    promotion_type: str
    discount_type: str
    discount_value: float
    target_product_ids: list[str]
    target_categories: list[str]
    target_tier_rules: Optional[TierRulesModel]
    badge_text: Optional[str]
    badge_color: Optional[str]
    priority: int
    is_active: bool
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    days_of_week: list[int]
    time_of_day_start: Optional[time]
    time_of_day_end: Optional[time]


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    errors: list[str]
    warnings: list[str]
    matching_products: int


class TestPromotionRequest(BaseModel):
    """Request model for testing promotions against a product."""
    product_id: str
    quantity: float = 1
    tier_id: Optional[str] = None
    at: Optional[datetime] = None


class TestPromotionResponse(BaseModel):
    """Response model for a promotion test."""
    applicable: list[dict]
    best_promotion_id: Optional[str]
    base_price: float
    final_price: float


def _response(promotion: Promotion) -> PromotionResponse:
    return PromotionResponse(**promotion.to_dict())


# Endpoints

@router.get("", response_model=list[PromotionResponse])
async def list_promotions(include_inactive: bool = True, state: AppState = Depends(get_state)):
    """List all promotions."""
    promotions = state.promotions_service.list_promotions(include_inactive=include_inactive)
    return [_response(p) for p in promotions]


@router.get("/stats")
async def get_stats(state: AppState = Depends(get_state)):
    """Get promotion statistics."""
    return state.promotions_service.get_stats()


@router.get("/{promotion_id}", response_model=PromotionResponse)
async def get_promotion(promotion_id: str, state: AppState = Depends(get_state)):
    """Get a single promotion by ID."""
    promotion = state.promotions_service.get_promotion(promotion_id)
    if not promotion:
        raise HTTPException(status_code=404, detail=f"Promotion '{promotion_id}' not found")
    return _response(promotion)


@router.post("", response_model=PromotionResponse)
async def create_promotion(data: PromotionCreate, state: AppState = Depends(get_state)):
    """Create a new promotion."""
    promotion = Promotion.from_dict(data.model_dump())

    # Validate first
    validation = state.promotions_service.validate_promotion(promotion)
    if not validation.valid:
        raise HTTPException(status_code=400, detail={"errors": validation.errors})

    try:
        created = state.promotions_service.create_promotion(promotion)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    state.refresh()
    return _response(created)


@router.put("/{promotion_id}", response_model=PromotionResponse)
async def update_promotion(promotion_id: str, updates: PromotionUpdate, state: AppState = Depends(get_state)):
    """Update an existing promotion."""
    # Only fields present in the body are updated, including explicit nulls
    update_dict = updates.model_dump(exclude_unset=True)

    existing = state.promotions_service.get_promotion(promotion_id)
    if existing is None:
        raise HTTPException(status_code=404, detail=f"Promotion '{promotion_id}' not found")

    merged = Promotion.from_dict({**existing.to_dict(), **update_dict})
    validation = state.promotions_service.validate_promotion(merged)
    if not validation.valid:
        raise HTTPException(status_code=400, detail={"errors": validation.errors})

    try:
        updated = state.promotions_service.update_promotion(promotion_id, update_dict)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    state.refresh()
    return _response(updated)


@router.delete("/{promotion_id}")
async def delete_promotion(promotion_id: str, state: AppState = Depends(get_state)):
    """Delete a promotion."""
    try:
        state.promotions_service.delete_promotion(promotion_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    state.refresh()
    return {"success": True, "message": f"Promotion '{promotion_id}' deleted"}


@router.post("/validate", response_model=ValidationResponse)
async def validate_promotion(data: PromotionCreate, state: AppState = Depends(get_state)):
    """Validate a promotion without saving."""
    promotion = Promotion.from_dict(data.model_dump())
    result = state.promotions_service.validate_promotion(promotion)
    return ValidationResponse(
        valid=result.valid,
        errors=result.errors,
        warnings=result.warnings,
        matching_products=result.matching_products
    )


@router.post("/compile")
async def compile_promotions(state: AppState = Depends(get_state)):
    """Force recompile of promotions and reload engine."""
    success, errors = state.promotions_service.compile_promotions()
    if success:
        state.refresh()
    return {
        "success": success,
        "errors": errors
    }


@router.post("/test", response_model=TestPromotionResponse)
async def test_promotions(request: TestPromotionRequest, state: AppState = Depends(get_state)):
    """Show which promotions apply to a product and which one wins."""
    product = state.engine.get_product(request.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product '{request.product_id}' not found")

    now = request.at or datetime.now().astimezone()
    promotions = state.active_promotions()

    applicable = state.engine.promotion_matcher.find_applicable(
        product,
        quantity=request.quantity,
        tier_id=request.tier_id,
        now=now,
        promotions=promotions,
    )
    calc = calculate_price(product, promotions, request.quantity, request.tier_id, now=now)

    return TestPromotionResponse(
        applicable=[
            {
                "id": p.id,
                "name": p.name,
                "priority": p.priority,
                "promotion_type": p.promotion_type,
                "discount": calculate_discount(p, calc.original_price),
            }
            for p in applicable
        ],
        best_promotion_id=calc.promotion.id if calc.promotion else None,
        base_price=calc.original_price,
        final_price=calc.final_price,
    )
