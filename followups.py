"""
followups.py
Follow-up tasks. Created as a side effect of recording a payment; they only
reference a bill by id and are never cascaded on bill deletion.
"""

from __future__ import annotations

import logging

import db
from models import PAYMENT_FOLLOWUP_NOTE, Followup

logger = logging.getLogger(__name__)


def schedule_payment_followup(bill_id: str, schedule_date: str, note: str | None = None) -> dict:
    followup = Followup(
        client=bill_id,
        scheduleDate=schedule_date,
        response=note or PAYMENT_FOLLOWUP_NOTE,
    )
    doc = followup.to_doc()
    db.execute(
        "INSERT INTO followups(id, bill_id, doc) VALUES(?,?,?)",
        (followup._id, bill_id, db.dumps(doc)),
    )
    logger.info("Scheduled payment followup %s for bill %s on %s", followup._id, bill_id, schedule_date)
    return doc


def list_followups(client: str | None = None) -> list[dict]:
    if client:
        rows = db.fetch_all("SELECT doc FROM followups WHERE bill_id = ? ORDER BY seq DESC", (client,))
    else:
        rows = db.fetch_all("SELECT doc FROM followups ORDER BY seq DESC")
    return [db.loads(r["doc"]) for r in rows]
