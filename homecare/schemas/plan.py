"""
Plan and Billing Schemas
"""
from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime


class PlanResponse(BaseModel):
    id: int
    name: str
    slug: str
    price_cents: int
    max_homes: Optional[int] = None
    unlimited_reminders: bool
    report_access: bool
    priority_support: bool

    class Config:
        from_attributes = True


class UpcomingInvoice(BaseModel):
    amount_due: Optional[int] = None
    currency: Optional[str] = None
    period_end: Optional[datetime] = None


class InvoiceSummary(BaseModel):
    id: Optional[str] = None
    number: Optional[str] = None
    amount_paid: Optional[int] = None
    currency: Optional[str] = None
    status: Optional[str] = None
    created: Optional[datetime] = None
    hosted_invoice_url: Optional[str] = None


class BillingSummary(BaseModel):
    plan_id: int
    plan_name: str
    subscription_status: str
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    upcoming_invoice: Optional[UpcomingInvoice] = None
    invoices: list[InvoiceSummary] = []


class CheckoutRequest(BaseModel):
    plan: Literal["core", "rivopro"]
    return_to: Literal["billing", "onboarding"] = "billing"


class CheckoutResponse(BaseModel):
    session_id: Optional[str] = None
    session_url: Optional[str] = None


class CancelResponse(BaseModel):
    status: Optional[str] = None
    cancel_at_period_end: bool
    current_period_end: Optional[datetime] = None


class ChangePlanRequest(BaseModel):
    target_plan: Literal["free", "core", "rivopro"]


class ChangePlanResponse(BaseModel):
    message: str
    plan_id: int
    current_period_end: Optional[datetime] = None


class UserPlanResponse(BaseModel):
    plan_id: int
    subscription_status: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool

    class Config:
        from_attributes = True
