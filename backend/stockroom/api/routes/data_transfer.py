"""Backup export and import routes."""

from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, Request, status
from fastapi.responses import Response

from stockroom.core.exceptions import StockroomError, http_error
from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.schemas.transfer import ImportResult
from stockroom.services.transfer_service import EXPORT_ENTITIES, TransferService

router = APIRouter()


@router.get("/export")
@limiter.limit("10/minute")
def export_data(request: Request, db: DbSession):
    """Full JSON backup of products, orders, customers and suppliers."""
    return TransferService(db).export_all()


@router.get("/export/{entity}.csv")
@limiter.limit("10/minute")
def export_csv(request: Request, entity: str, db: DbSession):
    """One collection as CSV."""
    if entity not in EXPORT_ENTITIES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown entity '{entity}'")
    return Response(
        content=TransferService(db).export_csv(entity),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{entity}.csv"'},
    )


@router.post("/import", response_model=ImportResult)
@limiter.limit("5/minute")
def import_data(request: Request, db: DbSession, payload: Dict[str, Any] = Body(...)):
    """Replace products, orders, customers and suppliers with a backup.

    Stock movements, backorders, purchase orders and supplier prices are not
    in a backup and are deleted too; ``removed`` reports the rows lost per table.
    """
    try:
        return TransferService(db).import_all(payload)
    except (StockroomError, ValueError, TypeError) as e:
        raise http_error(e)
