from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Optional
import logging

from trek_costing import __version__
from trek_costing.engine.payments import build_payment_details
from trek_costing.api.quotes_api import router as quotes_router
from trek_costing.api import state

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Trek Costing API",
    description="Backend API for trek quotes, payments and cost reports",
    version=__version__
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include quote management API
app.include_router(quotes_router)


class PaymentStatusRequest(BaseModel):
    total_cost: float
    total_paid: float
    total_refund: float = 0


class NewQuoteRequest(BaseModel):
    group_size: int = 1
    start_date: Optional[str] = None
    save: bool = True


@app.get("/")
async def root():
    return {"status": "online", "message": "Trek Costing API Active"}


@app.post("/payments/status")
async def payment_status(req: PaymentStatusRequest):
    details = build_payment_details(
        req.total_cost,
        total_paid=req.total_paid,
        total_refund=req.total_refund,
        epsilon=state.settings.payment_epsilon,
    )
    return details.to_dict()


@app.get("/treks")
async def list_treks():
    return [
        {
            "trek_id": t.trek_id,
            "name": t.name,
            "days": t.days,
            "permits": [p.to_dict() for p in t.permits],
        }
        for t in state.catalog.list_treks()
    ]


@app.post("/treks/{trek_id}/quote")
async def new_quote_for_trek(trek_id: str, req: NewQuoteRequest):
    try:
        quote = state.catalog.new_quote(trek_id, req.group_size, req.start_date)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if req.save:
        try:
            quote = state.quote_service.create_quote(quote)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    data = quote.to_dict()
    data["totals"] = state.engine.compute_quote_totals(quote).to_dict()
    return data


@app.get("/system/status")
async def get_status():
    settings = state.settings
    return {
        "engine_active": True,
        "clamp_at_zero": state.engine.clamp_at_zero,
        "store_backend": settings.store_backend,
        "currency_symbol": settings.currency_symbol,
        "export_dir": str(settings.export_dir),
        "treks_loaded": len(state.catalog.treks),
        "quotes_count": len(state.quote_service.list_quotes()),
    }
