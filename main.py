import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, FastAPI, Form, Query, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

import config
import crud
import services
import sessions
from auth import (
    SESSION_KEY,
    Identity,
    authenticate,
    current_admin,
    current_identity,
    get_store,
    resolve_identity,
    set_password,
    verify_password,
)
from errors import AppError, BadInput, Forbidden, Unauthenticated
from schemas import Employee, RequestCreate, RequestListing, RequestStatus, StatusUpdate, VacationRequest
from store import ItemStore
from utils import today, utcnow

config.configure_logging()
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = ItemStore.from_url(config.DATABASE_URL)
    await store.create_all()
    await sessions.delete_expired(store, utcnow())
    app.state.store = store
    logger.info("Store ready")
    yield
    await store.dispose()


app = FastAPI(title="Vacation Tracker", version="1.0.0", lifespan=lifespan)
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
app.add_middleware(
    SessionMiddleware,
    secret_key=config.SESSION_SECRET,
    max_age=config.SESSION_TTL_DAYS * 24 * 60 * 60,
    same_site="lax",
    https_only=config.SESSION_HTTPS_ONLY,
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.__class__.__name__, request.method, request.url.path, exc.detail)
    if request.url.path.startswith("/api"):
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)
    if isinstance(exc, Unauthenticated):
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    return templates.TemplateResponse(
        request, "error.html", {"error": exc.detail}, status_code=exc.status_code
    )


async def create_for(
    identity: Identity, store: ItemStore, employee_id: Optional[str], start_date: str, end_date: str, now: datetime
) -> VacationRequest:
    # regular users only file for themselves; admins may file on behalf of anyone
    target_id = employee_id or identity.employee.id
    if target_id != identity.employee.id and not identity.is_admin:
        raise Forbidden("You can only request vacations for yourself")
    employee = identity.employee if target_id == identity.employee.id else await crud.get_employee(store, target_id)
    return await services.create_request(store, employee.id, employee.name, start_date, end_date, now)


# ---------- service ----------

@app.get("/")
def root():
    return {"message": "Vacation management API", "version": app.version}


@app.get("/health")
def health():
    return {"status": "ok"}


# ---------- login ----------

@app.get("/login", response_class=HTMLResponse)
async def login_form(request: Request, store: ItemStore = Depends(get_store), now: datetime = Depends(utcnow)):
    token = request.session.get(SESSION_KEY)
    if token:
        try:
            await resolve_identity(store, token, now)
            return RedirectResponse(url="/requests", status_code=status.HTTP_303_SEE_OTHER)
        except Unauthenticated:
            request.session.clear()
    return templates.TemplateResponse(request, "login.html", {})


@app.post("/login")
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    store: ItemStore = Depends(get_store),
    now: datetime = Depends(utcnow),
):
    try:
        employee = await authenticate(store, email, password)
    except Unauthenticated as e:
        logger.warning("Failed login for %s", email)
        return templates.TemplateResponse(
            request, "login.html", {"error": e.detail, "email": email}, status_code=status.HTTP_401_UNAUTHORIZED
        )

    token = await sessions.create_session(store, employee.id, now, timedelta(days=config.SESSION_TTL_DAYS))
    request.session.clear()
    request.session[SESSION_KEY] = token
    logger.info("Employee %s logged in", employee.id)
    return RedirectResponse(url="/requests", status_code=status.HTTP_303_SEE_OTHER)


@app.post("/logout")
async def logout(request: Request, store: ItemStore = Depends(get_store)):
    token = request.session.get(SESSION_KEY)
    if token:
        await sessions.destroy_session(store, token)
    request.session.clear()
    return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)


@app.get("/change-password", response_class=HTMLResponse)
def change_password_form(request: Request, identity: Identity = Depends(current_identity)):
    return templates.TemplateResponse(request, "change_password.html", {"me": identity})


@app.post("/change-password", response_class=HTMLResponse)
async def change_password_submit(
    request: Request,
    old_password: str = Form(...),
    new_password: str = Form(...),
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
):
    employee = identity.employee
    if employee.password_hash is None or not verify_password(old_password, employee.password_hash):
        return templates.TemplateResponse(
            request,
            "change_password.html",
            {"me": identity, "error": "Current password is incorrect"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    try:
        await set_password(store, employee.id, new_password)
    except BadInput as e:
        return templates.TemplateResponse(
            request, "change_password.html", {"me": identity, "error": e.detail}, status_code=e.status_code
        )
    return RedirectResponse(f"/employees/{employee.id}", status_code=status.HTTP_303_SEE_OTHER)


# ---------- HTML pages ----------

@app.get("/employees", response_class=HTMLResponse)
async def employees_page(
    request: Request,
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
    day: date = Depends(today),
):
    employees = await services.list_employees_with_days(store, day)
    return templates.TemplateResponse(request, "employees.html", {"me": identity, "employees": employees})


@app.get("/employees/{employee_id}", response_class=HTMLResponse)
async def employee_page(
    request: Request,
    employee_id: str,
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
    day: date = Depends(today),
):
    employee = await services.get_employee_with_days(store, employee_id, day)
    history = await services.employee_history(store, employee_id)
    return templates.TemplateResponse(
        request, "employee_detail.html", {"me": identity, "employee": employee, "requests": history}
    )


@app.get("/requests", response_class=HTMLResponse)
async def requests_page(
    request: Request,
    status_filter: Optional[str] = Query(None, alias="status"),
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
):
    # an empty ?status= means "all"
    status_filter = status_filter or None
    listing = await services.list_requests(store, status_filter)
    return templates.TemplateResponse(
        request,
        "requests.html",
        {"me": identity, "listing": listing, "statuses": list(RequestStatus)},
    )


@app.get("/requests/new", response_class=HTMLResponse)
async def request_form(
    request: Request,
    employee_id: Optional[str] = None,
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
    day: date = Depends(today),
):
    return await _render_request_form(request, identity, store, day, employee_id or identity.employee.id)


async def _render_request_form(request, identity, store, day, selected_id, error=None, form=None, status_code=200):
    if identity.is_admin:
        employees = await services.list_employees_with_days(store, day)
    else:
        employees = [await services.get_employee_with_days(store, identity.employee.id, day)]
    return templates.TemplateResponse(
        request,
        "request_form.html",
        {"me": identity, "employees": employees, "selected_id": selected_id, "error": error, "form": form or {}},
        status_code=status_code,
    )


@app.post("/requests/new")
async def submit_request_form(
    request: Request,
    start_date: str = Form(...),
    end_date: str = Form(...),
    employee_id: Optional[str] = Form(None),
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
    now: datetime = Depends(utcnow),
    day: date = Depends(today),
):
    try:
        await create_for(identity, store, employee_id, start_date, end_date, now)
    except BadInput as e:
        form = {"start_date": start_date, "end_date": end_date}
        return await _render_request_form(
            request, identity, store, day, employee_id or identity.employee.id,
            error=e.detail, form=form, status_code=e.status_code,
        )
    return RedirectResponse(url="/requests", status_code=status.HTTP_303_SEE_OTHER)


@app.post("/requests/{employee_id}/{request_id}/approve")
async def approve_request_form(
    employee_id: str,
    request_id: str,
    admin: Identity = Depends(current_admin),
    store: ItemStore = Depends(get_store),
):
    await services.transition_status(store, employee_id, request_id, RequestStatus.APPROVED)
    return RedirectResponse(url="/requests", status_code=status.HTTP_303_SEE_OTHER)


@app.post("/requests/{employee_id}/{request_id}/reject")
async def reject_request_form(
    employee_id: str,
    request_id: str,
    admin: Identity = Depends(current_admin),
    store: ItemStore = Depends(get_store),
):
    await services.transition_status(store, employee_id, request_id, RequestStatus.REJECTED)
    return RedirectResponse(url="/requests", status_code=status.HTTP_303_SEE_OTHER)


# ---------- JSON API ----------

@app.get("/api/me", response_model=Employee)
async def read_me(
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
    day: date = Depends(today),
):
    return await services.get_employee_with_days(store, identity.employee.id, day)


@app.get("/api/employees", response_model=List[Employee])
async def read_employees(
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
    day: date = Depends(today),
):
    return await services.list_employees_with_days(store, day)


@app.get("/api/employees/{employee_id}", response_model=Employee)
async def read_employee(
    employee_id: str,
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
    day: date = Depends(today),
):
    return await services.get_employee_with_days(store, employee_id, day)


@app.get("/api/requests", response_model=RequestListing)
async def read_requests(
    status_filter: Optional[str] = Query(None, alias="status"),
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
):
    return await services.list_requests(store, status_filter or None)


@app.post("/api/requests", response_model=VacationRequest, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: RequestCreate,
    identity: Identity = Depends(current_identity),
    store: ItemStore = Depends(get_store),
    now: datetime = Depends(utcnow),
):
    return await create_for(identity, store, payload.employee_id, payload.start_date, payload.end_date, now)


@app.post("/api/requests/{employee_id}/{request_id}/approve", response_model=VacationRequest)
async def approve_request(
    employee_id: str,
    request_id: str,
    admin: Identity = Depends(current_admin),
    store: ItemStore = Depends(get_store),
):
    return await services.transition_status(store, employee_id, request_id, RequestStatus.APPROVED)


@app.post("/api/requests/{employee_id}/{request_id}/reject", response_model=VacationRequest)
async def reject_request(
    employee_id: str,
    request_id: str,
    admin: Identity = Depends(current_admin),
    store: ItemStore = Depends(get_store),
):
    return await services.transition_status(store, employee_id, request_id, RequestStatus.REJECTED)


@app.put("/api/requests/{employee_id}/{request_id}/status", response_model=VacationRequest)
async def update_request_status(
    employee_id: str,
    request_id: str,
    payload: StatusUpdate,
    admin: Identity = Depends(current_admin),
    store: ItemStore = Depends(get_store),
):
    return await services.transition_status(store, employee_id, request_id, payload.status)
