import os
import sys
from datetime import date, datetime, timezone

import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

os.environ.setdefault("SESSION_SECRET", "test-secret")

from auth import hash_password  # noqa: E402
from schemas import Employee  # noqa: E402
from store import ItemStore  # noqa: E402

TODAY = date(2025, 6, 16)
NOW = datetime(2025, 6, 16, 9, 30, tzinfo=timezone.utc)
PASSWORD = "Secret123"
# bcrypt is slow on purpose; hash once for the whole run
PASSWORD_HASH = hash_password(PASSWORD)


def make_employee(employee_id="e1", **overrides) -> Employee:
    fields = dict(
        id=employee_id,
        name=f"Employee {employee_id}",
        department="IT",
        email=f"{employee_id}@example.com",
        is_admin=False,
        hire_date=date(2020, 3, 15),
        password_hash=PASSWORD_HASH,
    )
    fields.update(overrides)
    return Employee(**fields)


@pytest.fixture
async def store(tmp_path):
    store = ItemStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await store.create_all()
    yield store
    await store.dispose()
