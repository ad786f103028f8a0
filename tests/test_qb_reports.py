from decimal import Decimal

import pytest

from club_ledger.ingest.adapters.qb_reports import (
    parse_balance_summary,
    parse_contact_list,
    parse_sales_detail,
)
from club_ledger.ingest.utils import ImportFileError
from club_ledger.mapping import FeeBucket
from club_ledger.names import NameMatcher

CONTACT_LIST = """\
Customer Contact List
Lakeside Softball Club

Customer full name,Phone numbers,Email,Full name,Full address
"Doe, Jane",Phone:(231) 590-6615 Mobile:(734) 751-6933,jane@example.com,Jane Doe,"1 Main St,  Town MI"
Stanley Steemer,Phone:555-0100,info@ss.example,Pat Owner,
Sample Customer,,,,
TOTAL,,,,
"Monday, March 3, 2025 10:00 AM GMT-05:00"
"""

BALANCE_SUMMARY = """\
Customer Balance Summary
Lakeside Softball Club
All Dates

Customer,Total
"Doe, Jane",300.00
John  Roe,"1,000.00"
Weird,n/a
TOTAL,"1,300.00"
"""

SALES_DETAIL = """\
Sales by Customer Detail
Lakeside Softball Club
"January 1 - December 31, 2025"

,Transaction date,Transaction type,Num,Product/Service full name,Memo/Description,Quantity,Sales price,Amount,Balance
"Doe, Jane",,,,,,,,,
,03/01/2025,Invoice,1001,Acceptance Fee,,1,250.00,250.00,0.00
,04/01/2025,Invoice,1002,Second Installment,,1,300.00,300.00,300.00
"Total for Doe, Jane",,,,,,,,550.00,
Stanley Steemer,,,,,,,,,
,03/05/2025,Invoice,1005,Sponsorship,,1,500.00,500.00,0.00
Total for Stanley Steemer,,,,,,,,500.00,
,,,,,,,,,
TOTAL,,,,,,,,"1,050.00",
"Accrual basis Monday, March 3, 2025 10:00 AM GMT-05:00"
"""


def test_contact_list_skips_title_block_and_footer():
    contacts = parse_contact_list(CONTACT_LIST)

    assert [c.full_name for c in contacts] == ["Doe, Jane", "Stanley Steemer", "Sample Customer"]
    jane = contacts[0]
    assert jane.row_number == 4
    assert jane.phone == "(231) 590-6615"
    assert jane.email == "jane@example.com"
    assert jane.contact_name == "Jane Doe"
    assert jane.address == "1 Main St, Town MI"
    assert contacts[1].contact_name == "Pat Owner"
    assert contacts[2].phone == ""


def test_contact_list_without_header_is_a_file_error():
    with pytest.raises(ImportFileError, match="Customer full name"):
        parse_contact_list("Name,Email\nJane,jane@example.com\n")


def test_balance_summary_keys_by_normalized_name():
    balances = parse_balance_summary(BALANCE_SUMMARY)
    assert balances == {
        "doe, jane": Decimal("300.00"),
        "john roe": Decimal("1000.00"),
    }


def test_sales_detail_drops_denylisted_entities_and_footers():
    result = parse_sales_detail(SALES_DETAIL, matcher=NameMatcher.from_names())

    assert result.issues == []
    (jane,) = result.statements
    assert jane.name == "Doe, Jane"
    assert jane.total_invoiced == Decimal("550.00")
    assert jane.detail_total() == Decimal("550.00")
    assert [d.transaction.reference_number for d in jane.details] == ["1001", "1002"]
    assert [d.bucket for d in jane.details] == [FeeBucket.REGISTRATION, FeeBucket.OTHER]
    # An empty memo falls back to the product name
    assert jane.details[0].transaction.description == "Acceptance Fee"
    assert jane.details[1].open_balance == Decimal("300.00")
