import logging
import uuid
from datetime import date, datetime
from typing import List, Optional

import crud
import entitlement
from errors import BadInput
from schemas import Employee, RequestCounts, RequestListing, RequestStatus, VacationRequest
from store import ItemStore
from utils import parse_iso_date

logger = logging.getLogger(__name__)


def consumed_days(requests: List[VacationRequest], year: int) -> int:
    """Days of approved requests starting in ``year``."""
    return sum(
        r.requested_days
        for r in requests
        if r.status == RequestStatus.APPROVED and r.start_date.year == year
    )


def with_days(employee: Employee, requests: List[VacationRequest], today: date) -> Employee:
    tenure = entitlement.tenure_years(employee.hire_date, today)
    allotted = entitlement.legal_allotment(tenure)
    consumed = consumed_days(requests, today.year)
    return employee.model_copy(
        update={
            "tenure_years": tenure,
            "allotted_days": allotted,
            "consumed_days": consumed,
            "available_days": entitlement.available_days(allotted, consumed),
        }
    )


async def get_employee_with_days(store: ItemStore, employee_id: str, today: date) -> Employee:
    employee = await crud.get_employee(store, employee_id)
    requests = await crud.list_requests_for_employee(store, employee_id)
    return with_days(employee, requests, today)


async def list_employees_with_days(store: ItemStore, today: date) -> List[Employee]:
    # one query per employee; fine for a single company's roster
    enriched = []
    for employee in await crud.list_employees(store):
        requests = await crud.list_requests_for_employee(store, employee.id)
        enriched.append(with_days(employee, requests, today))
    enriched.sort(key=lambda e: e.name.lower())
    return enriched


async def employee_history(store: ItemStore, employee_id: str) -> List[VacationRequest]:
    requests = await crud.list_requests_for_employee(store, employee_id)
    requests.sort(key=lambda r: r.created_at, reverse=True)
    return requests


async def create_request(
    store: ItemStore,
    employee_id: str,
    employee_name: str,
    start_date: str,
    end_date: str,
    now: datetime,
) -> VacationRequest:
    start = parse_iso_date(start_date, "start_date")
    end = parse_iso_date(end_date, "end_date")
    if end < start:
        raise BadInput("end_date must not be before start_date")

    request = VacationRequest(
        id=str(uuid.uuid4()),
        employee_id=employee_id,
        employee_name=employee_name,
        start_date=start,
        end_date=end,
        status=RequestStatus.PENDING,
        requested_days=entitlement.business_days(start, end),
        created_at=now,
    )
    await crud.put_request(store, request)
    logger.info(
        "Request %s created for employee %s: %s..%s (%d days)",
        request.id, employee_id, start, end, request.requested_days,
    )
    return request


def count_by_status(requests: List[VacationRequest]) -> RequestCounts:
    counts = RequestCounts(total=len(requests))
    for r in requests:
        if r.status == RequestStatus.PENDING:
            counts.pending += 1
        elif r.status == RequestStatus.APPROVED:
            counts.approved += 1
        elif r.status == RequestStatus.REJECTED:
            counts.rejected += 1
    return counts


async def list_requests(store: ItemStore, status: Optional[str] = None) -> RequestListing:
    status_filter = RequestStatus.parse(status) if status else None
    requests = await crud.list_all_requests(store)
    if status_filter is not None:
        requests = [r for r in requests if r.status == status_filter]
    requests.sort(key=lambda r: r.created_at, reverse=True)
    # counts describe the returned set, filtered or not
    return RequestListing(
        status_filter=status_filter,
        counts=count_by_status(requests),
        requests=requests,
    )


async def transition_status(
    store: ItemStore, employee_id: str, request_id: str, new_status: str
) -> VacationRequest:
    target = RequestStatus.parse(new_status)
    request = await crud.get_request(store, employee_id, request_id)
    # no check-and-set: concurrent decisions resolve to the last write
    updated = request.model_copy(update={"status": target})
    await crud.put_request(store, updated)
    logger.info("Request %s of employee %s: %s -> %s", request_id, employee_id, request.status.value, target.value)
    return updated
