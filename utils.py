"""
utils.py
Coercion, dates, upload staging, exports.
"""

from __future__ import annotations

import math
import os
import tempfile
from datetime import date, datetime
from pathlib import Path

import pandas as pd

import config
from models import DEFAULT_STATUS, STATUSES

UPLOAD_DIR = config.UPLOAD_DIR

MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Tried after date/datetime.fromisoformat
_DATE_FORMATS = ("%Y/%m/%d", "%d-%m-%Y", "%d/%m/%Y", "%d %b %Y", "%b %d, %Y")


def to_number(value) -> float:
    """
    Lenient numeric coercion: anything that is not a finite number becomes 0.
    Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def normalize_status(value) -> str:
    status = value.strip() if isinstance(value, str) else None
    if not status or status not in STATUSES:
        return DEFAULT_STATUS
    return status


def compute_balance(price, admission_charges, discount_amount, amount_paid) -> float:
    return (
        to_number(price)
        + to_number(admission_charges)
        - to_number(discount_amount)
        - to_number(amount_paid)
    )


def parse_date(value: str) -> date | None:
    value = value.strip()
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def format_date(value) -> str:
    """
    Display form "DD Mon YYYY"; unparseable input is returned verbatim.
    """
    if not value:
        return ""
    parsed = parse_date(str(value))
    if parsed is None:
        return str(value)
    return f"{parsed.day:02d} {MONTH_NAMES[parsed.month - 1]} {parsed.year}"


def format_money(value) -> str:
    return f"Rs. {to_number(value):.2f}"


def read_upload(upload) -> tuple[bytes, str] | None:
    """
    Stage an uploaded file under UPLOAD_DIR, read it back and remove the temp
    artifact on every path.

    `upload` is anything with .filename, .mimetype and .save(path), e.g. a
    werkzeug FileStorage. Returns (bytes, content_type) or None when no file
    was sent.
    """
    if upload is None or not getattr(upload, "filename", None):
        return None

    upload_dir = Path(UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=upload_dir, prefix="upload-")
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        upload.save(str(tmp_path))
        data = tmp_path.read_bytes()
    finally:
        tmp_path.unlink(missing_ok=True)

    content_type = getattr(upload, "mimetype", None) or "application/octet-stream"
    return data, content_type


EXPORT_COLUMNS = [
    "_id", "memberId", "client", "contactNumber", "email", "package", "joiningDate", "endDate",
    "price", "admissionCharges", "discountAmount", "amountPaid", "balance", "status",
    "totalPaidIncludingRenewals",
]


def bills_to_csv_bytes(bills: list[dict]) -> bytes:
    df = pd.DataFrame(bills)
    df = df.reindex(columns=EXPORT_COLUMNS)
    return df.to_csv(index=False).encode("utf-8")


def revenue_summary_by_month(bills: list[dict]) -> pd.DataFrame:
    """
    Amounts collected per month, from renewal snapshots and payment entries.
    """
    rows = []
    for bill in bills:
        for entry in bill.get("renewalHistory") or []:
            rows.append({"date": entry.get("date"), "amount": to_number(entry.get("amountPaid"))})
        for entry in bill.get("paymentHistory") or []:
            rows.append({"date": entry.get("date"), "amount": to_number(entry.get("amount"))})

    df = pd.DataFrame(rows, columns=["date", "amount"])
    df["date"] = pd.to_datetime(df["date"], errors="coerce", utc=True, format="ISO8601")
    df = df.dropna(subset=["date"])
    if df.empty:
        return pd.DataFrame(columns=["month", "revenue"])

    df["month"] = df["date"].dt.strftime("%Y-%m")
    summary = df.groupby("month", as_index=False)["amount"].sum()
    summary = summary.rename(columns={"amount": "revenue"})
    return summary.sort_values("month", ascending=False).reset_index(drop=True)
