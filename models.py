"""
models.py
Lightweight domain helpers (field allow-lists, statuses, dataclasses).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

import db

STATUSES = ("Active", "Inactive")
DEFAULT_STATUS = "Active"

PROFILE_FIELDS = (
    "client",
    "contactNumber",
    "alternateContact",
    "email",
    "clientSource",
    "gender",
    "dateOfBirth",
    "anniversary",
    "profession",
    "taxId",
    "workoutHours",
    "areaAddress",
    "remarks",
    "followupDate",
    "paymentMethodDetail",
    "appointTrainer",
    "clientRep",
)

TERM_FIELDS = ("package", "joiningDate", "endDate")

# All coerced with utils.to_number (non-numeric -> 0)
NUMERIC_FIELDS = (
    "sessions",
    "price",
    "admissionCharges",
    "discountAmount",
    "tax",
    "amountPayable",
    "amountPaid",
    "balance",
    "amount",
)

# Fields a general edit may touch; memberId, _id and the histories are excluded
EDITABLE_FIELDS = PROFILE_FIELDS + TERM_FIELDS + NUMERIC_FIELDS + ("status",)

RENEWAL_TEXT_FIELDS = ("joiningDate", "endDate", "package", "remarks", "trainer")
RENEWAL_NUMERIC_FIELDS = ("price", "admissionCharges", "discountAmount", "amountPaid", "balance")

FOLLOWUP_PENDING = "Pending"
PAYMENT_FOLLOWUP_TYPE = "Payment"
PAYMENT_FOLLOWUP_NOTE = "Payment Follow-up"


@dataclass
class RenewalEntry:
    joiningDate: str | None
    endDate: str | None
    package: str | None
    price: float
    admissionCharges: float
    discountAmount: float
    amountPaid: float
    balance: float
    remarks: str | None = None
    trainer: str | None = None
    date: str = field(default_factory=db.now_iso)
    _id: str = field(default_factory=db.new_id)

    def to_doc(self) -> dict:
        return asdict(self)


@dataclass
class PaymentEntry:
    amount: float
    mode: str | None = None
    note: str | None = None
    date: str = field(default_factory=db.now_iso)
    _id: str = field(default_factory=db.new_id)

    def to_doc(self) -> dict:
        return asdict(self)


@dataclass
class Followup:
    client: str  # bill _id
    scheduleDate: str
    response: str
    followupType: str = PAYMENT_FOLLOWUP_TYPE
    status: str = FOLLOWUP_PENDING
    createdAt: str = field(default_factory=db.now_iso)
    _id: str = field(default_factory=db.new_id)

    def to_doc(self) -> dict:
        return asdict(self)
