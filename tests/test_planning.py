import textwrap
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from club_ledger.classifier import classify_statement
from club_ledger.executor import (
    DocumentWrite,
    FinanceUpsert,
    ImportMode,
    PlannedRecord,
    RowError,
    SkippedRow,
    apply,
)
from club_ledger.ingest.adapters import generic_csv
from club_ledger.ingest.tokenizer import parse, parse_records
from club_ledger.mapping import (
    FeeBucket,
    expense_category_mapper,
    fee_bucket_mapper,
    income_category_mapper,
    payment_method_mapper,
)
from club_ledger.names import EntityDirectory, NameMatcher
from club_ledger.persistence import EXPENSES, INCOME, PLAYER_FINANCES, PLAYERS, SPONSORS
from club_ledger.planning import (
    SUBTOTAL_ADJUSTMENT_ID,
    PlanContext,
    plan_customers,
    plan_expenses,
    plan_income,
    plan_invoices,
    plan_report_finances,
    plan_report_income,
)
from tests.helpers.ledger_stub import MemoryLedgerStore

NOW = datetime(2025, 9, 1, 12, 0, tzinfo=UTC)


def _ctx(directory: EntityDirectory | None = None) -> PlanContext:
    return PlanContext(
        season="2025-2026",
        recorded_by="quickbooks-import",
        now=NOW,
        matcher=NameMatcher.from_names(),
        directory=directory or EntityDirectory(),
    )


def _records(text: str) -> list[dict[str, str]]:
    return parse_records(textwrap.dedent(text).lstrip("\n"))


def _only_write(item) -> DocumentWrite:
    assert isinstance(item, PlannedRecord)
    (w,) = item.writes
    assert isinstance(w, DocumentWrite)
    return w


# ---- expenses / income --------------------------------------------------------


def test_plan_expenses():
    rows = generic_csv.expense_rows(
        _records(
            """
            Date,Vendor,Category,Amount,Payment Method,Check #,Memo
            3/1/2025,City Parks,Field Rental,-150.00,Check,1042,Spring field
            3/1/2025,City Parks,Field Rental,-150.00,Check,1042,Spring field
            bad-date,Acme,Insurance,10,,,
            3/2/2025,,Mystery,25,,,
            """
        ),
        categories=expense_category_mapper(),
        methods=payment_method_mapper(),
    )
    items = list(plan_expenses(rows, _ctx()))

    first, dup, err, unknown = items
    w1, w2 = _only_write(first), _only_write(dup)
    assert w1.collection == EXPENSES
    assert w2.key == f"{w1.key}-2"
    assert w1.document["amount"] == "150.00"
    assert w1.document["category"] == "facilities"
    assert w1.document["paymentMethod"] == "check"
    assert w1.document["checkNumber"] == "1042"
    assert w1.document["paidDate"] == "2025-03-01"
    assert w1.document["season"] == "2025-2026"
    assert first.summary == "3/1/2025 | City Parks | facilities | $150.00"

    assert err == RowError(4, 'Invalid or missing date "bad-date"')

    doc = _only_write(unknown).document
    assert doc["vendor"] == "Unknown Vendor"
    assert doc["category"] == "other"
    assert doc["description"] == "QuickBooks import - expense"


def test_zero_amount_rows_are_skipped_not_errors():
    rows = generic_csv.expense_rows(
        _records(
            """
            Date,Vendor,Category,Amount
            3/1/2025,City Parks,Field Rental,0.00
            3/2/2025,City Parks,Field Rental,$(0)
            """
        ),
        categories=expense_category_mapper(),
        methods=payment_method_mapper(),
    )
    items = list(plan_expenses(rows, _ctx()))
    assert items == [SkippedRow(2, "zero amount"), SkippedRow(3, "zero amount")]

    invoices = generic_csv.invoice_rows([{"Customer": "Jane Doe", "Amount": "0"}])
    (item,) = plan_invoices(invoices, _ctx(), buckets=fee_bucket_mapper())
    assert item == SkippedRow(2, "zero amount")

    result = apply(items + [item], ImportMode.DRY_RUN)
    assert (result.imported, result.skipped, result.errors) == (0, 3, [])


def test_expense_keys_do_not_depend_on_row_position():
    header = "Date,Vendor,Category,Amount\n"
    a = "3/1/2025,City Parks,Field Rental,150\n"
    b = "3/2/2025,Bat Shop,Equipment,80\n"

    def keys(text):
        rows = generic_csv.expense_rows(
            parse_records(text),
            categories=expense_category_mapper(),
            methods=payment_method_mapper(),
        )
        return {_only_write(i).key for i in plan_expenses(rows, _ctx())}

    assert keys(header + a + b) == keys(header + b + a)


def test_plan_income_links_existing_player_and_check_number():
    directory = EntityDirectory([("p-1", {"displayName": "Jane Doe"})])
    rows = generic_csv.income_rows(
        _records(
            """
            Date,Customer,Account,Amount,Payment Method,Ref #
            3/5/2025,jane  doe,Registration Fees,250.00,Check,555
            3/6/2025,Stanley Steemer,Sponsorship,500.00,Zelle,Z-1
            """
        ),
        categories=income_category_mapper(),
        methods=payment_method_mapper(),
    )
    jane, sponsor = (_only_write(i).document for i in plan_income(rows, _ctx(directory)))

    assert jane["playerId"] == "p-1"
    assert jane["category"] == "player_payments"
    assert jane["checkNumber"] == "555"
    assert jane["referenceNumber"] == "555"
    assert sponsor["playerId"] is None
    assert sponsor["checkNumber"] is None
    assert sponsor["paymentMethod"] == "zelle"
    assert sponsor["category"] == "sponsorships"


# ---- customers ----------------------------------------------------------------


def test_plan_customers_routes_people_sponsors_and_samples():
    rows = generic_csv.customer_rows(
        _records(
            """
            Name,Email,Phone,Address,Balance
            "Doe, Jane",jane@example.com,555-0100,1 Main St,125.50
            Sample Customer,,,,
            "  STANLEY   steemer ",info@ss.example,,,0
            John Roe,,,,
            ,x@example.com,,,
            Bad Balance,,,,abc
            """
        )
    )
    jane, sample, stanley, john, missing, bad = plan_customers(rows, _ctx())

    assert isinstance(jane, PlannedRecord)
    player, finance = jane.writes
    assert isinstance(player, DocumentWrite) and isinstance(finance, FinanceUpsert)
    assert (player.collection, player.key, player.merge) == (PLAYERS, "doe-jane", True)
    assert player.document["firstName"] == "Jane"
    assert player.document["lastName"] == "Doe"
    assert player.document["notes"] == (
        "Imported from QuickBooks CSV. Address: 1 Main St. QB Balance: $125.50"
    )
    assert finance.key == "doe-jane-2025-2026"
    (charge,) = finance.patch.charges
    assert (charge.id, charge.bucket, charge.amount) == (
        "qb-customer-balance",
        FeeBucket.OTHER,
        Decimal("125.50"),
    )

    assert isinstance(sample, SkippedRow)

    w = _only_write(stanley)
    assert (w.collection, w.key) == (SPONSORS, "stanley-steemer")
    assert "level" in w.preserve

    assert [type(x) for x in john.writes] == [DocumentWrite]
    assert missing == RowError(6, "Missing customer name")
    assert bad == RowError(7, 'Invalid balance "abc"')


@pytest.mark.parametrize("name", ["Stanley Steemer", "stanley steemer", "  STANLEY  STEEMER  "])
def test_denylisted_customers_never_become_players(name):
    rows = generic_csv.customer_rows([{"Name": name, "Email": "", "Balance": "50"}])
    store = MemoryLedgerStore()
    apply(plan_customers(rows, _ctx()), ImportMode.LIVE, store)
    assert store.docs(PLAYERS) == {}
    assert store.docs(PLAYER_FINANCES) == {}
    assert list(store.docs(SPONSORS)) == ["stanley-steemer"]


def test_non_ascii_customers_get_separate_live_records():
    rows = generic_csv.customer_rows(
        [{"Name": "李雷", "Balance": "10"}, {"Name": "王芳", "Balance": "20"}]
    )
    store = MemoryLedgerStore()
    result = apply(plan_customers(rows, _ctx()), ImportMode.LIVE, store, clock=lambda: NOW)

    assert (result.imported, result.errors) == (2, [])
    players = store.docs(PLAYERS)
    assert len(players) == 2
    assert "" not in players
    finances = store.docs(PLAYER_FINANCES)
    assert sorted(f["totalOwed"] for f in finances.values()) == ["10.00", "20.00"]


# ---- invoices -----------------------------------------------------------------


INVOICES = """
    Customer,Date,Amount,Status,Balance Due,Invoice #,Memo
    Jane Doe,3/1/2025,250.00,Paid,0.00,1001,Acceptance Fee
    Jane Doe,4/1/2025,300.00,Overdue,300.00,1002,Second Installment
    Stanley Steemer,4/1/2025,500,Open,500,1003,
    Jane Doe,,abc,Open,,1004,
    """


def test_plan_invoices():
    items = list(
        plan_invoices(
            generic_csv.invoice_rows(_records(INVOICES)), _ctx(), buckets=fee_bucket_mapper()
        )
    )
    paid, overdue, sponsor, bad = items

    finance, income = paid.writes
    assert isinstance(finance, FinanceUpsert)
    assert finance.key == "jane-doe-2025-2026"
    assert [(c.id, c.bucket) for c in finance.patch.charges] == [
        ("inv-1001", FeeBucket.REGISTRATION)
    ]
    assert [(p.id, p.amount) for p in finance.patch.payments] == [
        ("qb-invoice-1001", Decimal("250.00"))
    ]
    assert finance.patch.overdue is False
    assert isinstance(income, DocumentWrite)
    assert (income.collection, income.key) == (INCOME, "qb-invoice-1001-jane-doe")
    assert paid.summary == (
        "Jane Doe | 3/1/2025 | Total: $250.00 | Paid: $250.00 | Due: $0.00 | paid"
    )

    (only,) = overdue.writes
    assert only.patch.payments == ()
    assert only.patch.overdue is True
    assert only.patch.charges[0].bucket is FeeBucket.OTHER

    assert isinstance(sponsor, SkippedRow)
    assert bad == RowError(5, 'Invalid or missing amount "abc"')


def test_invoices_accumulate_into_one_finance_record_and_reimport_converges():
    store = MemoryLedgerStore()
    for _ in range(2):
        items = plan_invoices(
            generic_csv.invoice_rows(_records(INVOICES)), _ctx(), buckets=fee_bucket_mapper()
        )
        apply(items, ImportMode.LIVE, store, clock=lambda: NOW)

    (doc,) = store.docs(PLAYER_FINANCES).values()
    assert len(doc["charges"]) == 2
    assert len(doc["payments"]) == 1
    assert doc["totalOwed"] == "550.00"
    assert doc["totalPaid"] == "250.00"
    assert doc["balance"] == "-300.00"
    assert doc["status"] == "overdue"
    assert list(store.docs(INCOME)) == ["qb-invoice-1001-jane-doe"]


# ---- sales detail + balance summary -------------------------------------------


STATEMENT = [
    ["Doe, Jane"],
    ["", "3/1/2025", "Invoice", "1001", "Acceptance Fee", "", "1", "250.00", "250.00"],
    ["", "4/1/2025", "Invoice", "1002", "Second Installment", "", "1", "300.00", "300.00"],
    ["Total for Doe, Jane", "", "", "", "", "", "", "", "550.00"],
    ["John Roe"],
    ["", "3/3/2025", "Invoice", "1003", "Uniform", "", "", "", "40.00"],
    ["", "bad", "Invoice", "1004", "Uniform", "", "", "", "40.00"],
    ["Total for John Roe", "", "", "", "", "", "", "", "40.00"],
]


def test_plan_report_finances():
    result = classify_statement(STATEMENT, matcher=NameMatcher.from_names())
    balances = {"doe, jane": Decimal("300.00")}

    items = list(plan_report_finances(result.statements, balances, _ctx(), issues=result.issues))
    issue, jane, john = items

    assert issue == RowError(7, 'John Roe: Invalid date "bad"')

    (w,) = jane.writes
    assert w.key == "doe-jane-2025-2026"
    assert [c.id for c in w.patch.charges] == ["1001-acceptance-fee", "1002-second-installment"]
    (payment,) = w.patch.payments
    assert payment.id == "qb-import-doe-jane-2025-2026"
    assert payment.amount == Decimal("250.00")
    assert w.patch.notes == "Acceptance Fee: $250.00 | Second Installment: $300.00"
    assert jane.summary == "Doe, Jane: Invoiced $550.00, Paid $250.00, Balance $300.00"

    # Absent from the balance summary means nothing is owed
    (w,) = john.writes
    assert w.patch.payments[0].amount == Decimal("40.00")


def test_plan_report_income_keys_by_invoice_and_entity():
    result = classify_statement(STATEMENT, matcher=NameMatcher.from_names())
    items = list(plan_report_income(result.statements, _ctx()))
    keys = [_only_write(i).key for i in items]
    assert keys == ["inv-1001-doe-jane", "inv-1002-doe-jane", "inv-1003-john-roe"]
    doc = _only_write(items[0]).document
    assert doc["category"] == "player_payments"
    assert doc["playerId"] == "doe-jane"
    assert doc["notes"] == "QB Invoice #1001"


def test_report_finances_reimport_is_idempotent():
    result = classify_statement(STATEMENT, matcher=NameMatcher.from_names())
    balances = {"doe, jane": Decimal("300.00")}
    store = MemoryLedgerStore()

    def run():
        items = plan_report_finances(result.statements, balances, _ctx())
        apply(items, ImportMode.LIVE, store, clock=lambda: NOW)

    run()
    once = {k: dict(v) for k, v in store.docs(PLAYER_FINANCES).items()}
    run()

    assert store.docs(PLAYER_FINANCES) == once
    jane = once["doe-jane-2025-2026"]
    assert jane["totalOwed"] == "550.00"
    assert jane["totalPaid"] == "250.00"
    assert jane["balanceDue"] == "300.00"
    assert jane["feeBuckets"]["registration"] == "250.00"
    assert jane["feeBuckets"]["other"] == "300.00"


def test_report_subtotal_mismatch_is_balanced_by_an_adjustment_charge():
    rows = [
        ["Doe, Jane"],
        ["", "3/1/2025", "Invoice", "1001", "Acceptance Fee", "", "1", "250.00", "250.00"],
        ["Total for Doe, Jane", "", "", "", "", "", "", "", "300.00"],
    ]
    result = classify_statement(rows, matcher=NameMatcher.from_names())
    store = MemoryLedgerStore()

    items = list(plan_report_finances(result.statements, {}, _ctx()))
    (w,) = items[0].writes
    assert w.patch.charges[-1].id == SUBTOTAL_ADJUSTMENT_ID
    assert w.patch.charges[-1].amount == Decimal("50.00")
    assert items[0].summary == "Doe, Jane: Invoiced $300.00, Paid $300.00, Balance $0.00"

    apply(items, ImportMode.LIVE, store, clock=lambda: NOW)
    jane = store.docs(PLAYER_FINANCES)["doe-jane-2025-2026"]
    assert jane["totalOwed"] == jane["totalPaid"] == "300.00"
    assert jane["feeBuckets"]["other"] == "50.00"
    assert jane["status"] == "paid"


def test_parse_helper_is_used_for_statements():
    # Statement rows usually come straight from the tokenizer
    rows = parse('"Doe, Jane"\n,3/1/2025,Invoice,1001,Acceptance Fee,,1,250.00,250.00\n')
    result = classify_statement(rows, matcher=NameMatcher.from_names())
    assert [s.name for s in result.statements] == ["Doe, Jane"]
