from datetime import date
from decimal import Decimal

import pytest

from club_ledger.api import LedgerAuthError, open_store
from club_ledger.ctv import CanonicalTransaction
from club_ledger.persistence import PLAYERS, SqlLedgerStore, compute_fingerprint
from tests.helpers.db import count_documents, documents


def _tx(**overrides) -> CanonicalTransaction:
    fields = dict(
        row_number=2,
        date=date(2025, 3, 1),
        category_raw="Field Rental",
        category_canonical="facilities",
        amount=Decimal("150.00"),
        counterparty_name="City Parks",
        payment_method_raw="Check",
        payment_method_canonical="check",
        reference_number="1042",
        description="Spring field",
    )
    fields.update(overrides)
    return CanonicalTransaction(**fields)


def test_set_get_and_merge(ledger_db: str):
    store = SqlLedgerStore(database_url=ledger_db)
    assert store.get(PLAYERS, "jane-doe") is None

    store.set(PLAYERS, "jane-doe", {"displayName": "Jane Doe", "teamId": "u14"})
    store.set(PLAYERS, "jane-doe", {"displayName": "Jane Doe", "contactEmail": "j@x.org"}, merge=True)
    assert store.get(PLAYERS, "jane-doe") == {
        "displayName": "Jane Doe",
        "teamId": "u14",
        "contactEmail": "j@x.org",
    }

    # Without merge the stored document is replaced
    store.set(PLAYERS, "jane-doe", {"displayName": "Jane Doe"})
    assert store.get(PLAYERS, "jane-doe") == {"displayName": "Jane Doe"}
    assert count_documents(ledger_db) == 1


def test_add_and_query(ledger_db: str):
    store = SqlLedgerStore(database_url=ledger_db)
    first = store.add(PLAYERS, {"displayName": "Jane Doe", "active": True})
    second = store.add(PLAYERS, {"displayName": "John Roe", "active": False})
    store.set("sponsors", "stanley-steemer", {"businessName": "Stanley Steemer"})

    assert first != second
    assert [k for k, _ in store.query(PLAYERS)] == [first, second]
    assert store.query(PLAYERS, {"active": False}) == [
        (second, {"displayName": "John Roe", "active": False})
    ]
    assert list(documents(ledger_db, "sponsors")) == ["stanley-steemer"]


def test_open_store_signs_in(ledger_db: str):
    store = open_store(database_url=ledger_db)
    assert store.query(PLAYERS) == []


def test_open_store_without_database_url_is_an_auth_error():
    with pytest.raises(LedgerAuthError, match="DATABASE_URL"):
        open_store()


def test_fingerprint_is_stable_and_ignores_row_number():
    a = compute_fingerprint(kind="expense", tx=_tx())
    assert a == compute_fingerprint(kind="expense", tx=_tx(row_number=40))
    assert len(a) == 64
    assert a == compute_fingerprint(kind=" Expense ", tx=_tx(amount=Decimal("150")))


@pytest.mark.parametrize(
    "change",
    [
        {"date": date(2025, 3, 2)},
        {"amount": Decimal("150.01")},
        {"counterparty_name": "City Park"},
        {"reference_number": None},
        {"description": "Fall field"},
    ],
)
def test_fingerprint_changes_with_canonical_fields(change):
    assert compute_fingerprint(kind="expense", tx=_tx()) != compute_fingerprint(
        kind="expense", tx=_tx(**change)
    )


def test_fingerprint_separates_kinds():
    assert compute_fingerprint(kind="expense", tx=_tx()) != compute_fingerprint(
        kind="income", tx=_tx()
    )
