"""
Property reports.

A report summarises one property: its details, task completion (DIY
versus professional), recent verified history and what is due next.
Premium plans include reports; anyone else buys access per property
through a one-off Stripe payment, recorded by the checkout webhook as a
ReportDownload row.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional
import uuid

from sqlalchemy.orm import Session

from homecare.config import get_settings
from homecare.models.plan import ReportDownload
from homecare.models.property import Property
from homecare.models.task import TaskHistory, UserTask
from homecare.models.user import User
from homecare.core.exceptions import InvalidInputError, PaymentsNotConfigured, PermissionDenied
from homecare.services.billing import _call, ensure_customer, require_stripe
from homecare.services.plans import ensure_user_plan, get_user_plan
from homecare.services.stripe_client import StripeClient
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

HISTORY_LIMIT = 10
UPCOMING_LIMIT = 10


def has_report_access(db: Session, user: User, property_id: str) -> bool:
    if get_user_plan(db, user.id).report_access:
        return True
    return db.query(ReportDownload).filter(
        ReportDownload.user_id == user.id,
        ReportDownload.property_id == property_id,
    ).first() is not None


def build_report(db: Session, prop: Property, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    tasks = db.query(UserTask).filter(UserTask.property_id == prop.id).all()

    completed = [t for t in tasks if t.status == "completed"]
    pending = [t for t in tasks if t.status != "completed"]
    total = len(tasks)

    history = db.query(TaskHistory).filter(
        TaskHistory.property_id == prop.id
    ).order_by(TaskHistory.completed_at.desc()).limit(HISTORY_LIMIT).all()

    upcoming = sorted((t for t in pending if t.due_date >= today), key=lambda t: t.due_date)

    return {
        "generated_at": datetime.utcnow(),
        "property": {
            "id": prop.id,
            "nickname": prop.nickname,
            "address": prop.address,
            "zip_code": prop.zip_code,
            "property_type": prop.property_type,
            "year_built": prop.year_built,
            "square_feet": prop.square_feet,
            "region": prop.region,
        },
        "tasks": {
            "total": total,
            "completed": len(completed),
            "pending": len(pending),
            "overdue": sum(1 for t in pending if t.due_date < today),
            "completion_rate": round(len(completed) / total * 100, 1) if total else 0.0,
            "diy": sum(1 for t in completed if t.completed_by == "diy"),
            "professional": sum(1 for t in completed if t.completed_by == "professional"),
        },
        "history": [
            {
                "title": h.title,
                "completed_at": h.completed_at,
                "source": h.source,
                "confidence": h.confidence,
                "notes": h.notes,
            }
            for h in history
        ],
        "upcoming": [
            {"id": t.id, "title": t.title, "category": t.category, "due_date": t.due_date}
            for t in upcoming[:UPCOMING_LIMIT]
        ],
    }


def get_report(db: Session, user: User, prop: Property) -> Dict[str, Any]:
    if not has_report_access(db, user, prop.id):
        raise PermissionDenied("Property reports need the Premium plan or a purchased report")
    return build_report(db, prop)


def create_report_checkout(db: Session, user: User, stripe: Optional[StripeClient],
                           prop: Property, report_id: Optional[str] = None) -> Dict[str, str]:
    """One-off payment checkout for a single property's report."""
    stripe = require_stripe(stripe)
    settings = get_settings()
    if not settings.STRIPE_PRICE_ID_REPORT:
        raise PaymentsNotConfigured()

    report_id = report_id or f"rpt_{uuid.uuid4().hex[:16]}"
    customer_id = ensure_customer(db, user, ensure_user_plan(db, user.id), stripe)

    site = settings.SITE_URL.rstrip("/")
    session = _call(
        stripe.create_checkout_session,
        customer_id,
        settings.STRIPE_PRICE_ID_REPORT,
        f"{site}/reports/success?session_id={{CHECKOUT_SESSION_ID}}"
        f"&property_id={prop.id}&report_id={report_id}",
        f"{site}/properties/{prop.id}",
        {"user_id": user.id, "property_id": prop.id, "report_id": report_id, "address": prop.address},
        mode="payment",
    )
    logger.info(f"Report checkout {session.get('id')} created for {user.id} (property={prop.id})")
    return {"report_id": report_id, "session_id": session.get("id"), "session_url": session.get("url")}


def verify_purchase(db: Session, user: User, session_id: str,
                    property_id: str, report_id: str) -> ReportDownload:
    """The webhook-recorded purchase for this checkout session, or 400."""
    download = db.query(ReportDownload).filter(
        ReportDownload.user_id == user.id,
        ReportDownload.property_id == property_id,
        ReportDownload.report_id == report_id,
        ReportDownload.stripe_session_id == session_id,
    ).first()
    if download is None:
        raise InvalidInputError("Report purchase not found or payment not completed")
    return download
