"""
Quotes API - FastAPI router for quote management, totals and exports.
"""
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ..engine.models import Quote, Transaction
from ..export.tables import export_csv, export_excel, default_filename
from ..services.invoice_payload import build_invoice_payload
from . import state

router = APIRouter(prefix="/quotes", tags=["quotes"])


# Pydantic models for API
class CostRowModel(BaseModel):
    """A priced line item."""
    id: Optional[str] = None
    description: str = ""
    rate: float = 0
    quantity: float = 0
    times: float = 0
    per_person: bool = False
    per_day: bool = False
    one_time: bool = False
    max_capacity: Optional[int] = None
    is_default: bool = False
    is_editable: bool = True
    from_place: str = ""
    to_place: str = ""


class SectionModel(BaseModel):
    """A section of rows with its discount."""
    id: Optional[str] = None
    name: str = ""
    rows: list[CostRowModel] = Field(default_factory=list)
    discount_type: str = "amount"
    discount_value: float = 0
    discount_remarks: str = ""


class QuoteModel(BaseModel):
    """Request model for creating or replacing a quote."""
    group_id: Optional[str] = None
    trek_id: Optional[str] = None
    trek_name: str = ""
    group_name: str = ""
    group_size: int = 1
    trek_days: int = 1
    start_date: Optional[str] = None
    permits: Optional[SectionModel] = None
    services: Optional[SectionModel] = None
    accommodation: Optional[SectionModel] = None
    transportation: Optional[SectionModel] = None
    extra_details: Optional[SectionModel] = None
    extra_services: Optional[SectionModel] = None
    custom_sections: list[SectionModel] = Field(default_factory=list)
    overall_discount_type: str = "amount"
    overall_discount_value: float = 0
    overall_discount_remarks: str = ""
    service_charge: float = 10
    use_pax: dict[str, bool] = Field(default_factory=dict)

    def to_quote(self) -> Quote:
        return Quote.from_dict(self.model_dump(exclude_none=True))


class GroupSizeRequest(BaseModel):
    """Request model for resizing a group."""
    group_size: int
    use_pax: Optional[dict[str, bool]] = None


class TransactionRequest(BaseModel):
    """Request model for recording a payment or refund."""
    amount: float
    type: str = "payment"
    date: Optional[str] = None
    note: str = ""
    payment_method: Optional[str] = None


def _get_or_404(group_id: str) -> Quote:
    quote = state.quote_service.get_quote(group_id)
    if not quote:
        raise HTTPException(status_code=404, detail=f"Quote '{group_id}' not found")
    return quote


def _quote_response(quote: Quote) -> dict:
    data = quote.to_dict()
    data['totals'] = state.engine.compute_quote_totals(quote).to_dict()
    return data


# Endpoints

@router.get("")
async def list_quotes(trek_id: Optional[str] = None):
    """List all quotes with their totals."""
    return [_quote_response(q) for q in state.quote_service.list_quotes(trek_id)]


@router.get("/stats")
async def get_stats():
    """Get quote and collection statistics."""
    return state.quote_service.get_stats()


@router.get("/{group_id}")
async def get_quote(group_id: str):
    """Get a single quote by group ID."""
    return _quote_response(_get_or_404(group_id))


@router.post("")
async def create_quote(quote_data: QuoteModel):
    """Create a new quote."""
    try:
        created = state.quote_service.create_quote(quote_data.to_quote())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _quote_response(created)


@router.put("/{group_id}")
async def update_quote(group_id: str, quote_data: QuoteModel):
    """Replace an existing quote."""
    _get_or_404(group_id)
    try:
        updated = state.quote_service.update_quote(group_id, quote_data.to_quote())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _quote_response(updated)


@router.delete("/{group_id}")
async def delete_quote(group_id: str):
    """Delete a quote."""
    try:
        state.quote_service.delete_quote(group_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": f"Quote '{group_id}' deleted"}


@router.post("/validate")
async def validate_quote(quote_data: QuoteModel):
    """Validate a quote without saving."""
    result = state.quote_service.validate_quote(quote_data.to_quote())
    return {"valid": result.valid, "errors": result.errors, "warnings": result.warnings}


@router.get("/{group_id}/totals")
async def get_totals(group_id: str):
    """Section and quote totals for a stored quote."""
    return state.engine.compute_quote_totals(_get_or_404(group_id)).to_dict()


@router.post("/{group_id}/group-size")
async def change_group_size(group_id: str, request: GroupSizeRequest):
    """Resize the group; pax-linked sections follow the new size."""
    _get_or_404(group_id)
    try:
        quote = state.quote_service.change_group_size(group_id, request.group_size, request.use_pax)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _quote_response(quote)


@router.get("/{group_id}/payload")
async def get_payload(group_id: str):
    """Booking API payload for a quote."""
    return build_invoice_payload(_get_or_404(group_id))


@router.get("/{group_id}/export.xlsx")
async def export_quote_excel(group_id: str):
    """Download the cost tables as an Excel workbook."""
    quote = _get_or_404(group_id)
    content = export_excel(quote, engine=state.engine)
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{default_filename(quote, "xlsx")}"'},
    )


@router.get("/{group_id}/export.csv")
async def export_quote_csv(group_id: str):
    """Download the cost tables as CSV."""
    quote = _get_or_404(group_id)
    return Response(
        content=export_csv(quote, engine=state.engine),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{default_filename(quote, "csv")}"'},
    )


@router.post("/{group_id}/transactions")
async def add_transaction(group_id: str, request: TransactionRequest):
    """Record a payment or refund."""
    _get_or_404(group_id)
    tx = Transaction.from_dict({**request.model_dump(), 'group_id': group_id})
    try:
        added = state.quote_service.record_transaction(tx)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return added.to_dict()


@router.get("/{group_id}/transactions")
async def list_transactions(group_id: str):
    """Transactions recorded for a quote."""
    _get_or_404(group_id)
    return [t.to_dict() for t in state.quote_service.store.list_transactions(group_id)]


@router.get("/{group_id}/payment-details")
async def get_payment_details(group_id: str):
    """Total cost, paid, balance and payment status."""
    _get_or_404(group_id)
    return state.quote_service.get_payment_details(group_id).to_dict()
