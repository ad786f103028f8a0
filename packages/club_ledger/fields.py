"""Column-name resolution for exports whose headers this system does not control.

``resolve(row, *candidates)`` looks a logical field up by an ordered list of
acceptable header names. Matching ignores case and surrounding/internal
whitespace runs, and the first candidate with a non-empty value wins, so the
candidate order encodes priority when an export carries several synonyms.

The synonym tuples below list the header variants observed across QuickBooks
expense, deposit, customer and invoice exports.
"""

from __future__ import annotations

from collections.abc import Mapping


def header_key(name: str) -> str:
    return " ".join(name.split()).lower()


def resolve(row: Mapping[str, str], *candidates: str) -> str:
    """Return the first non-empty value among ``candidates`` or ``""``."""

    index: dict[str, list[str]] = {}
    for k in row:
        index.setdefault(header_key(k), []).append(k)

    for name in candidates:
        for actual in index.get(header_key(name), ()):
            value = row.get(actual)
            if value is not None and value.strip() != "":
                return value
    return ""


# ---------------------------------------------------------------------------
# Expense export: Date, Vendor/Payee, Category/Account, Amount, Payment Method,
# Check #, Memo
# ---------------------------------------------------------------------------

EXPENSE_DATE = ("Date", "Txn Date", "Transaction Date", "Bill Date", "Payment Date")
EXPENSE_VENDOR = ("Vendor", "Payee", "Name", "Vendor/Payee", "Paid To")
EXPENSE_CATEGORY = (
    "Category",
    "Account",
    "Expense Account",
    "Account Name",
    "Type",
    "Class",
)
EXPENSE_AMOUNT = (
    "Amount",
    "Total",
    "Debit",
    "Amount (Debit)",
    "Payment Amount",
    "Total Amount",
)
EXPENSE_CHECK_NUMBER = ("Check #", "Check No", "Num", "Check Number", "Ref #", "Reference")

# ---------------------------------------------------------------------------
# Income export: Date, Source/Customer, Category/Account, Amount, Payment
# Method, Reference #, Memo
# ---------------------------------------------------------------------------

INCOME_DATE = ("Date", "Txn Date", "Transaction Date", "Deposit Date", "Payment Date")
INCOME_SOURCE = (
    "Source",
    "Customer",
    "Name",
    "From",
    "Received From",
    "Payer",
    "Customer/Job",
)
INCOME_CATEGORY = (
    "Category",
    "Account",
    "Income Account",
    "Account Name",
    "Type",
    "Class",
    "Item",
)
INCOME_AMOUNT = (
    "Amount",
    "Total",
    "Credit",
    "Amount (Credit)",
    "Payment Amount",
    "Deposit Amount",
    "Total Amount",
)
INCOME_REFERENCE = (
    "Reference #",
    "Ref #",
    "Reference",
    "Num",
    "Check #",
    "Check No",
    "Transaction #",
)

# Shared by expense and income exports
PAYMENT_METHOD = ("Payment Method", "Type", "Pay Method", "Payment Type", "Method")
MEMO = ("Memo", "Description", "Memo/Description", "Notes", "Line Memo", "Memo/Note")

# ---------------------------------------------------------------------------
# Customer export: Name, Email, Phone, Address, Balance
# ---------------------------------------------------------------------------

CUSTOMER_NAME = (
    "Name",
    "Customer",
    "Customer Name",
    "Customer full name",
    "Display Name",
    "Full Name",
    "Customer/Job",
)
CUSTOMER_EMAIL = ("Email", "Main Email", "Email Address", "E-mail", "Primary Email")
CUSTOMER_PHONE = (
    "Phone",
    "Phone numbers",
    "Main Phone",
    "Phone Number",
    "Primary Phone",
    "Mobile",
    "Cell Phone",
)
CUSTOMER_ADDRESS = (
    "Address",
    "Billing Address",
    "Full address",
    "Street",
    "Mailing Address",
)
CUSTOMER_BALANCE = ("Balance", "Balance Due", "Open Balance", "Amount Due", "Total Balance")
CUSTOMER_CONTACT_NAME = ("Full name", "Contact", "Contact Name", "Primary Contact")

# ---------------------------------------------------------------------------
# Invoice export: Customer, Date, Amount, Status, Balance Due, Invoice #
# ---------------------------------------------------------------------------

INVOICE_CUSTOMER = ("Customer", "Name", "Customer Name", "Customer/Job", "Bill To")
INVOICE_DATE = ("Date", "Txn Date", "Invoice Date", "Transaction Date")
INVOICE_AMOUNT = ("Amount", "Total", "Invoice Total", "Total Amount", "Original Amount")
INVOICE_STATUS = ("Status", "Invoice Status", "State")
INVOICE_BALANCE_DUE = ("Balance Due", "Balance", "Open Balance", "Amount Due", "Remaining")
INVOICE_NUMBER = ("Invoice #", "Num", "Number", "Invoice Number", "Ref #", "Doc Number")
