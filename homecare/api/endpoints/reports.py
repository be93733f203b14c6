"""
Property Report Endpoints

Premium homeowners read reports for any of their properties; others buy
one per property through Stripe Checkout.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from homecare.database import get_db
from homecare.models.user import User
from homecare.schemas.report import (
    PropertyReport,
    ReportCheckoutRequest,
    ReportCheckoutResponse,
    ReportVerifyRequest,
    ReportVerifyResponse,
)
from homecare.api.deps import require_homeowner
from homecare.api.endpoints.properties import get_owned_property
from homecare.services import reports
from homecare.services.stripe_client import StripeClient, get_stripe_client

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/checkout", response_model=ReportCheckoutResponse)
async def report_checkout(
    payload: ReportCheckoutRequest,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db),
    stripe: Optional[StripeClient] = Depends(get_stripe_client)
):
    """Start a one-off payment for one property's report."""
    prop = get_owned_property(db, current_user, payload.property_id)
    return reports.create_report_checkout(db, current_user, stripe, prop, payload.report_id)


@router.post("/verify", response_model=ReportVerifyResponse)
async def verify_report_purchase(
    payload: ReportVerifyRequest,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """
    Confirm a purchase after the Stripe redirect.

    Answers 400 until the checkout webhook has recorded the payment.
    """
    download = reports.verify_purchase(
        db, current_user, payload.session_id, payload.property_id, payload.report_id
    )
    return {
        "report_id": download.report_id,
        "property_id": download.property_id,
        "report_url": f"/api/v1/reports/properties/{download.property_id}",
        "purchased_at": download.created_at,
    }


@router.get("/properties/{property_id}", response_model=PropertyReport)
async def get_property_report(
    property_id: str,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    prop = get_owned_property(db, current_user, property_id)
    return reports.get_report(db, current_user, prop)
