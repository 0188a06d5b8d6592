"""
billing.py
Billing record store: one bill document per gym member, with embedded
renewal snapshots and an append-only payment log.

Balance rule on create and renew:
    balance = price + admissionCharges - discountAmount - amountPaid
Payments store amountPaid/balance exactly as the caller sends them, and a
general edit never recomputes balance.
"""

from __future__ import annotations

import logging
import sqlite3

import db
import followups
import utils
from models import (
    EDITABLE_FIELDS,
    NUMERIC_FIELDS,
    PROFILE_FIELDS,
    RENEWAL_NUMERIC_FIELDS,
    RENEWAL_TEXT_FIELDS,
    TERM_FIELDS,
    PaymentEntry,
    RenewalEntry,
)

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class BillingError(Exception):
    """Base class for errors reported back to the caller"""


class ValidationError(BillingError):
    """Missing or blank required input"""


class DuplicateMemberError(BillingError):
    """memberId already belongs to another bill"""


class NotFoundError(BillingError):
    """Bill (or its image) does not exist"""


# =============================================================================
# HELPERS
# =============================================================================

_ROW_COLUMNS = "id, doc, picture_type, picture IS NOT NULL AS has_picture"


def _text(value):
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _pick(form, fields) -> dict:
    """Allow-listed copy of the fields present in `form`, numbers coerced."""
    picked = {}
    for name in fields:
        if name not in form:
            continue
        value = form.get(name)
        picked[name] = utils.to_number(value) if name in NUMERIC_FIELDS else _text(value)
    return picked


def _project(doc: dict, row) -> dict:
    if row["has_picture"]:
        doc["profilePicture"] = {"contentType": row["picture_type"]}
    return doc


def _fetch_row(conn: sqlite3.Connection, bill_id: str):
    return conn.execute(f"SELECT {_ROW_COLUMNS} FROM gym_bills WHERE id = ?", (bill_id,)).fetchone()


def _require_row(conn: sqlite3.Connection, bill_id: str):
    row = _fetch_row(conn, bill_id)
    if row is None:
        raise NotFoundError("Client not found")
    return row


def _store(conn: sqlite3.Connection, doc: dict) -> None:
    doc["updatedAt"] = db.now_iso()
    conn.execute("UPDATE gym_bills SET doc = ? WHERE id = ?", (db.dumps(doc), doc["_id"]))


def _renewal_terms(form) -> dict:
    price = utils.to_number(form.get("price"))
    admission = utils.to_number(form.get("admissionCharges"))
    discount = utils.to_number(form.get("discountAmount"))
    paid = utils.to_number(form.get("amountPaid"))
    return {
        "price": price,
        "admissionCharges": admission,
        "discountAmount": discount,
        "amountPaid": paid,
        "balance": utils.compute_balance(price, admission, discount, paid),
    }


def total_paid_including_renewals(bill: dict) -> float:
    renewals = sum(utils.to_number(r.get("amountPaid")) for r in bill.get("renewalHistory") or [])
    return utils.to_number(bill.get("amountPaid")) + renewals


# =============================================================================
# OPERATIONS
# =============================================================================

def create_bill(form, upload=None) -> dict:
    if not form:
        raise ValidationError("No data provided")

    member_id = _text(form.get("memberId"))
    if not member_id or not member_id.strip():
        raise ValidationError("Member ID is required")
    member_id = member_id.strip()

    if db.fetch_one("SELECT id FROM gym_bills WHERE member_id = ?", (member_id,)):
        raise DuplicateMemberError(f'Member ID "{member_id}" already exists.')

    terms = _renewal_terms(form)
    first_entry = RenewalEntry(
        joiningDate=_text(form.get("joiningDate")),
        endDate=_text(form.get("endDate")),
        package=_text(form.get("package")),
        remarks=_text(form.get("remarks")),
        trainer=_text(form.get("trainer") or form.get("appointTrainer")),
        **terms,
    )

    now = db.now_iso()
    doc = _pick(form, PROFILE_FIELDS + TERM_FIELDS + NUMERIC_FIELDS)
    doc.update(terms)
    doc.update(
        _id=db.new_id(),
        memberId=member_id,
        status=utils.normalize_status(form.get("status")),
        paymentHistory=[],
        renewalHistory=[first_entry.to_doc()],
        createdAt=now,
        updatedAt=now,
    )

    picture = utils.read_upload(upload)
    data, content_type = picture if picture else (None, None)

    try:
        db.execute(
            "INSERT INTO gym_bills(id, member_id, doc, picture, picture_type) VALUES(?,?,?,?,?)",
            (doc["_id"], member_id, db.dumps(doc), data, content_type),
        )
    except sqlite3.IntegrityError as exc:
        raise DuplicateMemberError(f'Member ID "{member_id}" already exists.') from exc

    logger.info("Created bill %s for member %s (balance %.2f)", doc["_id"], member_id, doc["balance"])
    if content_type:
        doc["profilePicture"] = {"contentType": content_type}
    return doc


def list_bills() -> list[dict]:
    """All bills, newest first, each with the derived totalPaidIncludingRenewals."""
    rows = db.fetch_all(f"SELECT {_ROW_COLUMNS} FROM gym_bills ORDER BY seq DESC")
    bills = []
    for row in rows:
        bill = _project(db.loads(row["doc"]), row)
        bill["totalPaidIncludingRenewals"] = total_paid_including_renewals(bill)
        bills.append(bill)
    return bills


def get_bill(bill_id: str) -> dict:
    with db.get_conn() as conn:
        row = _require_row(conn, bill_id)
    return _project(db.loads(row["doc"]), row)


def renew_bill(bill_id: str, form) -> dict:
    """
    Append a renewal snapshot and move the bill's current terms to it.
    Any caller-supplied balance is ignored; both writes share one transaction.
    """
    terms = _renewal_terms(form)
    entry = RenewalEntry(
        joiningDate=_text(form.get("joiningDate")),
        endDate=_text(form.get("endDate")),
        package=_text(form.get("package")),
        remarks=_text(form.get("remarks")),
        trainer=_text(form.get("trainer")),
        **terms,
    )

    with db.transaction() as conn:
        row = _require_row(conn, bill_id)
        bill = db.loads(row["doc"])
        bill.setdefault("renewalHistory", []).append(entry.to_doc())

        for name in ("joiningDate", "endDate", "package", "remarks"):
            if name in form:
                bill[name] = getattr(entry, name)
        if "trainer" in form:
            bill["appointTrainer"] = entry.trainer
        bill.update(terms)
        bill["status"] = "Active"
        _store(conn, bill)

    logger.info("Renewed bill %s (package=%s, balance %.2f)", bill_id, entry.package, entry.balance)
    return _project(bill, row)


def edit_renewal(bill_id: str, renew_id: str, form) -> dict:
    """
    Replace one renewal entry wholesale, keeping its _id.

    A bill or entry that does not match is not an error: the result simply
    reports matchedCount 0.
    """
    replacement = {name: _text(form.get(name)) for name in RENEWAL_TEXT_FIELDS}
    for name in RENEWAL_NUMERIC_FIELDS:
        replacement[name] = utils.to_number(form.get(name)) if name in form else None
    replacement["date"] = _text(form.get("date")) or db.now_iso()
    replacement["_id"] = renew_id

    result = {"acknowledged": True, "matchedCount": 0, "modifiedCount": 0}
    with db.transaction() as conn:
        row = _fetch_row(conn, bill_id)
        if row is None:
            return result

        bill = db.loads(row["doc"])
        history = bill.get("renewalHistory") or []
        for index, entry in enumerate(history):
            if entry.get("_id") != renew_id:
                continue
            result["matchedCount"] = 1
            if entry != replacement:
                history[index] = replacement
                _store(conn, bill)
                result["modifiedCount"] = 1
            break

    if not result["matchedCount"]:
        logger.debug("No renewal entry %s on bill %s", renew_id, bill_id)
    return result


def delete_renewal(bill_id: str, renew_id: str) -> dict:
    with db.transaction() as conn:
        row = _require_row(conn, bill_id)
        bill = db.loads(row["doc"])
        history = bill.get("renewalHistory") or []
        kept = [entry for entry in history if entry.get("_id") != renew_id]
        if len(kept) != len(history):
            bill["renewalHistory"] = kept
            _store(conn, bill)
            logger.info("Deleted renewal entry %s from bill %s", renew_id, bill_id)
    return _project(bill, row)


def update_bill(bill_id: str, form, upload=None) -> dict:
    """
    General edit: merge allow-listed fields onto the bill. Balance is not
    recomputed; a new picture replaces the stored one.
    """
    changes = _pick(form, [name for name in EDITABLE_FIELDS if name != "status"])
    changes["status"] = utils.normalize_status(form.get("status"))

    picture = utils.read_upload(upload)

    with db.transaction() as conn:
        row = _require_row(conn, bill_id)
        bill = db.loads(row["doc"])
        bill.update(changes)
        _store(conn, bill)
        if picture:
            conn.execute(
                "UPDATE gym_bills SET picture = ?, picture_type = ? WHERE id = ?",
                (picture[0], picture[1], bill_id),
            )

    if picture:
        bill["profilePicture"] = {"contentType": picture[1]}
        return bill
    return _project(bill, row)


def delete_bill(bill_id: str) -> None:
    """Hard delete. Followups that reference the bill are left alone."""
    with db.get_conn() as conn:
        deleted = conn.execute("DELETE FROM gym_bills WHERE id = ?", (bill_id,)).rowcount
    if deleted:
        logger.info("Deleted bill %s", bill_id)


def record_payment(bill_id: str, body) -> dict:
    """
    Store amountPaid/balance as given and append one paymentHistory entry.
    When followUpDate is present a Payment followup is scheduled afterwards;
    a failure there is logged and does not undo the payment.
    """
    payment = body.get("paymentHistory")
    if not isinstance(payment, dict):
        payment = {}
    entry_fields = {
        "amount": utils.to_number(payment.get("amount")),
        "mode": _text(payment.get("mode")),
        "note": _text(payment.get("note")),
    }
    if payment.get("date"):
        entry_fields["date"] = _text(payment["date"])
    entry = PaymentEntry(**entry_fields)

    with db.transaction() as conn:
        row = _require_row(conn, bill_id)
        bill = db.loads(row["doc"])
        if "amountPaid" in body:
            bill["amountPaid"] = utils.to_number(body.get("amountPaid"))
        if "balance" in body:
            bill["balance"] = utils.to_number(body.get("balance"))
        bill.setdefault("paymentHistory", []).append(entry.to_doc())
        _store(conn, bill)

    logger.info("Recorded payment of %.2f on bill %s", entry.amount, bill_id)

    follow_up_date = body.get("followUpDate")
    if follow_up_date:
        try:
            followups.schedule_payment_followup(bill_id, _text(follow_up_date), entry.note)
        except Exception:
            logger.exception("Payment recorded but followup creation failed for bill %s", bill_id)

    return _project(bill, row)


def get_image(bill_id: str) -> tuple[bytes, str]:
    row = db.fetch_one("SELECT picture, picture_type FROM gym_bills WHERE id = ?", (bill_id,))
    if row is None or row["picture"] is None:
        raise NotFoundError("Image not found")
    return bytes(row["picture"]), row["picture_type"] or "application/octet-stream"
