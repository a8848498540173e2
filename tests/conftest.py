"""
Shared fixtures for the invoicing test suite.
"""

from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient

from invoicing.config import get_settings
from invoicing.domain.models import Invoice, InvoiceItem
from invoicing.domain.values import InvoiceStatus
from invoicing.infrastructure.database import close_db, get_session, init_db


class FakeSequences:
    """
    Sequence source returning the given numbers in order.

    The last value repeats once the list is exhausted.
    """

    def __init__(self, *sequences: int) -> None:
        self.sequences = list(sequences) or [1]
        self.calls: list[tuple[int, int]] = []

    def next_sequence_number(self, year: int, month: int) -> int:
        self.calls.append((year, month))
        if len(self.sequences) > 1:
            return self.sequences.pop(0)
        return self.sequences[0]


class FakeNumberRegistry:
    def __init__(self, *taken: str) -> None:
        self.taken = set(taken)
        self.lookups: list[str] = []

    def exists_by_number(self, number: str) -> bool:
        self.lookups.append(number)
        return number in self.taken


class FakePreferences:
    def __init__(self, template: str) -> None:
        self.template = template

    def get_template(self) -> str:
        return self.template


def make_item(
    quantity="1.000",
    unit_price="100.00",
    vat_rate="23.00",
    description="Consulting",
    unit="godz.",
    sort_order=0,
) -> InvoiceItem:
    return InvoiceItem(
        description=description,
        quantity=quantity,
        unit=unit,
        unit_price=unit_price,
        vat_rate=vat_rate,
        sort_order=sort_order,
    )


def make_invoice(status=InvoiceStatus.ISSUED, items=None, **overrides) -> Invoice:
    fields = {
        "number": "FV/2024/10/0001",
        "issue_date": date(2024, 10, 15),
        "sale_date": date(2024, 10, 15),
        "customer_id": 1,
        "status": status,
    }
    fields.update(overrides)
    invoice = Invoice(**fields)
    if items is not None:
        invoice.replace_items(items)
    return invoice


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 10, 15, 14, 30, 5)


@pytest.fixture
def sqlite_settings(tmp_path, monkeypatch):
    """Point the application at a fresh SQLite file."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'invoicing.db'}")
    monkeypatch.setenv("DEBUG", "false")
    get_settings.cache_clear()
    close_db()
    yield get_settings()
    close_db()
    get_settings.cache_clear()


@pytest.fixture
def db_session(sqlite_settings):
    init_db()
    with get_session() as session:
        yield session


@pytest.fixture
def client(sqlite_settings):
    from invoicing.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client
