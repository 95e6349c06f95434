from __future__ import annotations

import logging

import requests
from sqlalchemy.exc import SQLAlchemyError

import pulse.db as pulse_db
from pulse.config import injury_email_webhook_url, notify_timeout_seconds
from pulse.models import InjuryReport, utcnow

logger = logging.getLogger(__name__)

INJURY_EVENTS = ("draft", "submitted")


class Notifier:
    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    def notify(self, event: str, report_id: int) -> bool:
        if not self.url:
            logger.info("injury email webhook not configured; skipping %s email for report %s", event, report_id)
            return False
        try:
            response = requests.post(
                self.url,
                json={"report_id": report_id, "event": event},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("injury email %s for report %s failed: %s", event, report_id, exc)
            return False
        return True


def get_notifier() -> Notifier:
    return Notifier(injury_email_webhook_url(), notify_timeout_seconds())


def send_injury_email(notifier: Notifier, report_id: int, event: str) -> None:
    if not notifier.notify(event, report_id):
        return
    column = "emailed_draft_at" if event == "draft" else "emailed_submitted_at"
    db = pulse_db.SessionLocal()
    try:
        report = db.get(InjuryReport, report_id)
        if report is not None:
            setattr(report, column, utcnow())
            db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("could not stamp %s on injury report %s", column, report_id)
    finally:
        db.close()
