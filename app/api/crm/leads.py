from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.shipping import (
    IngestionResultRead,
    LeadAssign,
    LeadCreate,
    LeadFetchRequest,
    LeadRead,
    LeadUpdate,
    QuoteConversion,
    QuoteRead,
)
from app.services import conversions as conversion_service
from app.services import lead_ingestion as ingestion_service
from app.services import leads as lead_service

router = APIRouter(prefix="/crm/leads", tags=["crm-leads"])


@router.post("/{customer_id}", response_model=LeadRead, status_code=status.HTTP_201_CREATED)
def create_lead(customer_id: str, payload: LeadCreate, db: Session = Depends(get_db)):
    return lead_service.leads.create(db, customer_id, payload)


@router.get("/{customer_id}", response_model=ListResponse[LeadRead])
def list_leads(
    customer_id: str,
    assigned_user_id: str | None = None,
    status: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return lead_service.leads.list_response(
        db,
        customer_id,
        assigned_user_id=assigned_user_id,
        status=status,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.post("/{customer_id}/fetch", response_model=IngestionResultRead)
def fetch_leads(customer_id: str, payload: LeadFetchRequest, db: Session = Depends(get_db)):
    result = ingestion_service.ingest_leads(db, customer_id, payload.api_endpoint, api_key=payload.api_key)
    return IngestionResultRead.model_validate(result)


@router.get("/{customer_id}/{lead_id}", response_model=LeadRead)
def get_lead(customer_id: str, lead_id: str, db: Session = Depends(get_db)):
    return lead_service.leads.get(db, lead_id, customer_id)


@router.patch("/{customer_id}/{lead_id}", response_model=LeadRead)
def update_lead(customer_id: str, lead_id: str, payload: LeadUpdate, db: Session = Depends(get_db)):
    return lead_service.leads.update(db, customer_id, lead_id, payload)


@router.put("/{customer_id}/{lead_id}/assign", response_model=LeadRead)
def assign_lead(customer_id: str, lead_id: str, payload: LeadAssign, db: Session = Depends(get_db)):
    return lead_service.leads.assign(db, customer_id, lead_id, payload.user_id)


@router.post("/{customer_id}/{lead_id}/cancel", response_model=LeadRead)
def cancel_lead(customer_id: str, lead_id: str, db: Session = Depends(get_db)):
    return lead_service.leads.cancel(db, customer_id, lead_id)


@router.delete("/{customer_id}/{lead_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lead(customer_id: str, lead_id: str, db: Session = Depends(get_db)):
    lead_service.leads.delete(db, customer_id, lead_id)


@router.post("/{customer_id}/{lead_id}/convert-to-quote", response_model=QuoteRead)
def convert_lead_to_quote(
    customer_id: str,
    lead_id: str,
    payload: QuoteConversion | None = None,
    db: Session = Depends(get_db),
):
    return conversion_service.convert_lead_to_quote(db, lead_id, payload, customer_id=customer_id)
