from datetime import datetime, timezone

import pytest

import utils


@pytest.mark.parametrize(
    "value, expected",
    [
        ("1500", 1500.0),
        (" 12.5 ", 12.5),
        (7, 7.0),
        ("", 0.0),
        (None, 0.0),
        ("abc", 0.0),
        ("1,000", 0.0),
        ("nan", 0.0),
        ("inf", 0.0),
        (True, 0.0),
        ([], 0.0),
    ],
)
def test_to_number_is_lenient(value, expected):
    assert utils.to_number(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [("Active", "Active"), (" Inactive ", "Inactive"), ("active", "Active"), ("", "Active"), (None, "Active")],
)
def test_normalize_status(value, expected):
    assert utils.normalize_status(value) == expected


def test_compute_balance():
    assert utils.compute_balance("1000", "200", "100", "600") == 500
    assert utils.compute_balance(None, None, None, "50") == -50


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-05", "05 Jan 2024"),
        ("2024-12-31T18:30:00", "31 Dec 2024"),
        ("2024/03/09", "09 Mar 2024"),
        ("next monday", "next monday"),
        ("", ""),
        (None, ""),
    ],
)
def test_format_date(value, expected):
    assert utils.format_date(value) == expected


def test_format_money():
    assert utils.format_money(1234.5) == "Rs. 1234.50"
    assert utils.format_money("oops") == "Rs. 0.00"


def test_read_upload_without_file():
    assert utils.read_upload(None) is None


def test_bills_to_csv_bytes_uses_fixed_columns():
    data = utils.bills_to_csv_bytes([{"memberId": "M1", "balance": 10.0, "extra": "dropped"}])
    header, row = data.decode("utf-8").splitlines()
    assert header.split(",") == utils.EXPORT_COLUMNS
    assert "dropped" not in row
    assert ",M1," in row


def test_revenue_summary_by_month():
    bills = [
        {
            "renewalHistory": [
                {"amountPaid": 500, "date": "2024-01-10T09:00:00.000+00:00"},
                {"amountPaid": 300, "date": "2024-02-02T09:00:00.000+00:00"},
            ],
            "paymentHistory": [{"amount": 200, "date": "2024-01-20T09:00:00.000+00:00"}],
        },
        {"renewalHistory": [{"amountPaid": "bad", "date": "not a date"}]},
    ]

    summary = utils.revenue_summary_by_month(bills)

    assert summary.to_dict(orient="records") == [
        {"month": "2024-02", "revenue": 300.0},
        {"month": "2024-01", "revenue": 700.0},
    ]


def test_revenue_summary_empty():
    summary = utils.revenue_summary_by_month([])
    assert list(summary.columns) == ["month", "revenue"]
    assert summary.empty


def test_revenue_uses_current_month_for_new_entries():
    now = datetime.now(timezone.utc).isoformat()
    summary = utils.revenue_summary_by_month([{"paymentHistory": [{"amount": 5, "date": now}]}])
    assert summary["month"].tolist() == [now[:7]]
