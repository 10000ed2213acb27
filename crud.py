"""Mapping between domain entities and flat store items.

Key scheme: an employee and all of its requests share the partition
``EMPLOYEE#<employee_id>``. The employee itself sits under the sort key
``METADATA``; each request under ``REQUEST#<request_id>``.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import ValidationError

from errors import BadInput, CorruptRecord, NotFound
from schemas import Employee, RequestStatus, VacationRequest
from store import PK, SK, TYPE, ItemStore

EMPLOYEE_PREFIX = "EMPLOYEE#"
REQUEST_PREFIX = "REQUEST#"
METADATA = "METADATA"

EMPLOYEE_TYPE = "employee"
REQUEST_TYPE = "request"


def employee_pk(employee_id: str) -> str:
    return f"{EMPLOYEE_PREFIX}{employee_id}"


def request_sk(request_id: str) -> str:
    return f"{REQUEST_PREFIX}{request_id}"


def _required(item: dict, field: str, kind):
    value = item.get(field)
    # bool is an int subclass; counts must be real integers
    if value is None or not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise CorruptRecord(f"Item {item.get(PK)}/{item.get(SK)}: bad or missing field '{field}'")
    return value


def _date(item: dict, field: str) -> date:
    raw = _required(item, field, str)
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise CorruptRecord(f"Item {item.get(PK)}/{item.get(SK)}: '{field}' is not a date") from None


def employee_to_item(employee: Employee) -> dict:
    item = {
        PK: employee_pk(employee.id),
        SK: METADATA,
        TYPE: EMPLOYEE_TYPE,
        "id": employee.id,
        "name": employee.name,
        "department": employee.department,
        "email": employee.email,
        "is_admin": employee.is_admin,
        "hire_date": employee.hire_date.isoformat(),
    }
    if employee.password_hash is not None:
        item["password_hash"] = employee.password_hash
    return item


def item_to_employee(item: dict) -> Employee:
    password_hash = item.get("password_hash")
    if password_hash is not None and not isinstance(password_hash, str):
        raise CorruptRecord(f"Item {item.get(PK)}/{item.get(SK)}: bad field 'password_hash'")
    try:
        return Employee(
            id=_required(item, "id", str),
            name=_required(item, "name", str),
            department=_required(item, "department", str),
            email=_required(item, "email", str),
            is_admin=_required(item, "is_admin", bool),
            hire_date=_date(item, "hire_date"),
            password_hash=password_hash,
        )
    except ValidationError as e:
        raise CorruptRecord(f"Item {item.get(PK)}/{item.get(SK)}: {e.errors()[0]['msg']}") from e


def request_to_item(request: VacationRequest) -> dict:
    return {
        PK: employee_pk(request.employee_id),
        SK: request_sk(request.id),
        TYPE: REQUEST_TYPE,
        "id": request.id,
        "employee_id": request.employee_id,
        "employee_name": request.employee_name,
        "start_date": request.start_date.isoformat(),
        "end_date": request.end_date.isoformat(),
        "status": request.status.value,
        "requested_days": request.requested_days,
        "created_at": request.created_at.isoformat(),
    }


def item_to_request(item: dict) -> VacationRequest:
    try:
        # older records carry the Spanish status names
        status = RequestStatus.parse(_required(item, "status", str))
    except BadInput:
        raise CorruptRecord(f"Item {item.get(PK)}/{item.get(SK)}: unknown status '{item['status']}'") from None
    try:
        created_at = datetime.fromisoformat(_required(item, "created_at", str))
    except ValueError:
        raise CorruptRecord(f"Item {item.get(PK)}/{item.get(SK)}: 'created_at' is not a timestamp") from None
    return VacationRequest(
        id=_required(item, "id", str),
        employee_id=_required(item, "employee_id", str),
        employee_name=_required(item, "employee_name", str),
        start_date=_date(item, "start_date"),
        end_date=_date(item, "end_date"),
        status=status,
        requested_days=_required(item, "requested_days", int),
        created_at=created_at,
    )


async def put_employee(store: ItemStore, employee: Employee) -> None:
    await store.put(employee_to_item(employee))


async def get_employee(store: ItemStore, employee_id: str) -> Employee:
    item = await store.get(employee_pk(employee_id), METADATA)
    if item is None:
        raise NotFound(f"Employee {employee_id} not found")
    return item_to_employee(item)


async def list_employees(store: ItemStore) -> List[Employee]:
    return [item_to_employee(item) for item in await store.scan(type=EMPLOYEE_TYPE)]


async def find_employee_by_email(store: ItemStore, email: str) -> Optional[Employee]:
    wanted = email.strip().lower()
    for item in await store.scan(type=EMPLOYEE_TYPE):
        if str(item.get("email", "")).lower() == wanted:
            return item_to_employee(item)
    return None


async def put_request(store: ItemStore, request: VacationRequest) -> None:
    await store.put(request_to_item(request))


async def get_request(store: ItemStore, employee_id: str, request_id: str) -> VacationRequest:
    item = await store.get(employee_pk(employee_id), request_sk(request_id))
    if item is None:
        raise NotFound("Vacation request not found")
    return item_to_request(item)


async def list_requests_for_employee(store: ItemStore, employee_id: str) -> List[VacationRequest]:
    items = await store.query(employee_pk(employee_id), REQUEST_PREFIX)
    return [item_to_request(item) for item in items]


async def list_all_requests(store: ItemStore) -> List[VacationRequest]:
    return [item_to_request(item) for item in await store.scan(type=REQUEST_TYPE)]
