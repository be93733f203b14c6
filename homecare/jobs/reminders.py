"""
Send task reminders from a scheduler (cron, k8s CronJob, ...).

    python -m homecare.jobs.reminders
"""
from homecare.config import get_settings
from homecare.database import SessionLocal
from homecare.services.tasks import send_task_reminders
from homecare.utils.logging import setup_logging, get_logger

logger = get_logger(__name__)


def main() -> dict:
    settings = get_settings()
    setup_logging(
        log_level=settings.LOG_LEVEL,
        json_format=(settings.ENVIRONMENT == "production")
    )

    db = SessionLocal()
    try:
        result = send_task_reminders(db)
    finally:
        db.close()

    logger.info(f"Task reminders sent: {result}")
    return result


if __name__ == "__main__":
    main()
