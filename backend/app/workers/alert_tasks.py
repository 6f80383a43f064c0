"""
Metric alert background task.
Aggregates the most recent window, e-mails crossed thresholds and pushes
them to connected dashboards.
"""

import logging
import smtplib
from datetime import datetime, timedelta, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.celery_app import celery_app
from app.core.config import get_settings
from app.schemas.analytics import AnalyticsFilters
from app.services.alert_service import (
    AlertThresholds,
    evaluate_alerts,
    render_alert_email,
)
from app.services.analytics_service import aggregate_row_to_dict, build_aggregate_query
from app.services.realtime_service import METRIC_ALERT, TRAFFIC_SPIKE, publish_event_sync

logger = logging.getLogger("app.workers.alerts")
settings = get_settings()

# Celery doesn't use async; tasks get their own sync engine
_engine = None


def _get_sync_engine():
    global _engine
    if _engine is None and settings.DATABASE_URL:
        _engine = create_engine(settings.sync_database_url, pool_pre_ping=True)
    return _engine


def _smtp_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_PORT and settings.SMTP_FROM_EMAIL)


def send_alert_email(to_email: str, subject: str, html_body: str) -> bool:
    """Send one alert e-mail over SMTP. Returns False when SMTP is not configured."""
    if not _smtp_configured():
        logger.warning(
            "SMTP not configured, alert to %s skipped (subject: %s)",
            to_email, subject,
        )
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_FROM_EMAIL
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html"))

    if settings.SMTP_USE_SSL:
        server = smtplib.SMTP_SSL(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS,
        )
    else:
        server = smtplib.SMTP(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS,
        )
        server.starttls()

    try:
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(msg)
    finally:
        server.quit()

    logger.info("Alert email sent to %s: %s", to_email, subject)
    return True


def window_filters(now: datetime | None = None) -> AnalyticsFilters:
    """Filters covering the configured alert window, ending now."""
    now = now or datetime.now(timezone.utc)
    return AnalyticsFilters(
        start_date=now - timedelta(minutes=settings.ALERT_WINDOW_MINUTES),
        end_date=now,
    )


@celery_app.task(
    name="app.workers.alert_tasks.check_metric_alerts",
    bind=True,
    max_retries=2,
)
def check_metric_alerts(self):
    """
    Evaluate metric thresholds over the recent window.
    Runs periodically via Celery Beat.
    """
    engine = _get_sync_engine()
    if not engine:
        logger.warning("Database not configured, skipping alert check")
        return {"alerts": 0}

    try:
        with Session(engine) as session:
            row = session.execute(build_aggregate_query(window_filters())).one()
    except Exception as exc:
        logger.error("Alert check query failed: %s", exc)
        raise self.retry(exc=exc)

    aggregate = aggregate_row_to_dict(row)

    if aggregate["total_sessions"] >= settings.ALERT_TRAFFIC_SPIKE_SESSIONS:
        publish_event_sync(TRAFFIC_SPIKE, {
            "sessions": aggregate["total_sessions"],
            "window_minutes": settings.ALERT_WINDOW_MINUTES,
        })

    alerts = evaluate_alerts(aggregate, AlertThresholds.from_settings(settings))
    if not alerts:
        logger.info("Alert check: all metrics within thresholds")
        return {"alerts": 0}

    for alert in alerts:
        logger.warning("Metric alert [%s]: %s", alert.type, alert.message)
        publish_event_sync(METRIC_ALERT, alert.to_dict())

    if settings.ALERT_EMAIL:
        subject, html = render_alert_email(alerts, settings.ALERT_WINDOW_MINUTES)
        try:
            send_alert_email(settings.ALERT_EMAIL, subject, html)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send alert email: %s", exc)
    else:
        logger.warning("ALERT_EMAIL not configured, alert e-mail not sent")

    return {"alerts": len(alerts), "types": [alert.type for alert in alerts]}
