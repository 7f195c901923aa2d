from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config.logging_config import configure_logging
from ..config.settings import Settings, get_settings
from ..engine import PriceCalculation, QuoteRequest
from ..engine.formatting import format_discount_percentage, format_price, format_savings
from .promotions_api import router as promotions_router
from .state import AppState, get_state


class PriceRequest(BaseModel):
    product_id: str
    quantity: float = Field(default=1, ge=0)
    tier_id: Optional[str] = None
    tier_price: Optional[float] = Field(default=None, ge=0)
    at: Optional[datetime] = None


def calculation_payload(calc: PriceCalculation) -> dict:
    """Calculation plus the display strings storefronts render."""
    payload = calc.to_dict()
    payload['display'] = {
        'final_price': format_price(calc.final_price),
        'original_price': format_price(calc.original_price),
        'savings': format_savings(calc.savings),
        'discount': format_discount_percentage(calc.discount_percentage),
    }
    return payload


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Promo Pricing API",
        description="Promotion-aware pricing for storefronts and point-of-sale",
        version="1.0.0"
    )
    app.state.pricing = AppState(settings)

    # Enable CORS for storefront development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(promotions_router)

    @app.get("/")
    async def root():
        return {"status": "online", "message": "Promo Pricing API Active"}

    @app.post("/price")
    async def calculate_price(req: PriceRequest, state: AppState = Depends(get_state)):
        calc = state.engine.quote(
            QuoteRequest(
                product_id=req.product_id,
                quantity=req.quantity,
                tier_id=req.tier_id,
                tier_price=req.tier_price,
                at=req.at,
            ),
            promotions=state.active_promotions(),
        )
        if calc is None:
            raise HTTPException(status_code=404, detail=f"Product '{req.product_id}' not found")
        return calculation_payload(calc)

    @app.get("/products/{product_id}/tiers")
    async def get_tier_prices(product_id: str, state: AppState = Depends(get_state)):
        tiers = state.engine.tier_prices(product_id, promotions=state.active_promotions())
        if tiers is None:
            raise HTTPException(status_code=404, detail=f"Product '{product_id}' not found")
        return {
            "product_id": product_id,
            "tiers": {tier_id: calculation_payload(calc) for tier_id, calc in tiers.items()},
        }

    @app.get("/catalog")
    async def get_catalog(
        search: Optional[str] = None,
        limit: int = 100,
        state: AppState = Depends(get_state),
    ):
        promotions = state.active_promotions()
        results = []
        for product in state.engine.search(search, limit=limit):
            calc = state.engine.quote(QuoteRequest(product_id=product.id), promotions=promotions)
            results.append({
                "id": product.id,
                "name": product.name,
                "category": product.category,
                "base_price": calc.original_price,
                "final_price": calc.final_price,
                "promotion_id": calc.promotion.id if calc.promotion else None,
                "badge": calc.badge.to_dict() if calc.badge else None,
            })
        return results

    @app.get("/system/status")
    async def get_status(state: AppState = Depends(get_state)):
        compiled = state.settings.compiled_promotions
        return {
            "engine_active": True,
            "products_count": len(state.engine.catalog),
            "promotions_loaded": state.engine.promotion_matcher.loaded,
            "promotions_count": len(state.active_promotions()),
            "cache_entries": len(state.cache),
            "promotions_last_compiled": compiled.stat().st_mtime if compiled.exists() else None,
        }

    return app
