"""Administrative tooling: seed employees and set their passwords.

    python setup_passwords.py add-employee --id 1 --name "Ana" --department IT \
        --email ana@example.com --hire-date 2020-03-15 [--admin]
    python setup_passwords.py list
    python setup_passwords.py set-password ana@example.com
    python setup_passwords.py set-password --all
"""
import argparse
import asyncio
import getpass
import sys

from pydantic import ValidationError

import config
import crud
from auth import set_password, validate_password_strength
from errors import AppError, BadInput, NotFound
from schemas import Employee
from store import ItemStore
from utils import parse_iso_date, today


def prompt_password() -> str:
    while True:
        password = getpass.getpass("New password (8+ chars, upper, lower and digits): ")
        try:
            validate_password_strength(password)
        except BadInput as e:
            print(f"✗ {e.detail}")
            continue
        if getpass.getpass("Confirm password: ") != password:
            print("✗ Passwords do not match, try again.")
            continue
        return password


async def _current_hash(store: ItemStore, employee_id: str):
    # replacing an employee keeps the password already set
    try:
        return (await crud.get_employee(store, employee_id)).password_hash
    except NotFound:
        return None


async def add_employee(store: ItemStore, args) -> None:
    hire_date = parse_iso_date(args.hire_date, "hire date")
    if hire_date > today():
        raise BadInput("Hire date cannot be in the future")
    existing = await crud.find_employee_by_email(store, args.email)
    if existing is not None and existing.id != args.id:
        raise BadInput(f"Employee {existing.id} already uses {args.email}")
    try:
        employee = Employee(
            id=args.id,
            name=args.name,
            department=args.department,
            email=args.email,
            is_admin=args.admin,
            hire_date=hire_date,
            password_hash=await _current_hash(store, args.id),
        )
    except ValidationError as e:
        raise BadInput(e.errors()[0]["msg"]) from e
    await crud.put_employee(store, employee)
    print(f"✓ Employee {employee.name} ({employee.email}) saved")


async def list_employees(store: ItemStore) -> None:
    employees = sorted(await crud.list_employees(store), key=lambda e: e.name.lower())
    if not employees:
        print("No employees found.")
        return
    for e in employees:
        flags = ["admin"] if e.is_admin else []
        flags.append("password set" if e.has_password else "no password")
        print(f"{e.id:<12} {e.name:<30} {e.email:<35} {', '.join(flags)}")


async def set_passwords(store: ItemStore, args) -> None:
    if args.all:
        targets = [e for e in await crud.list_employees(store) if not e.has_password]
        if not targets:
            print("Every employee already has a password.")
    else:
        employee = await crud.find_employee_by_email(store, args.who)
        if employee is None:
            employee = await crud.get_employee(store, args.who)
        targets = [employee]

    for employee in targets:
        print(f"\nEmployee: {employee.name} ({employee.email})")
        await set_password(store, employee.id, prompt_password())
        print("✓ Password saved")


async def run(args) -> None:
    store = ItemStore.from_url(args.database_url)
    try:
        await store.create_all()
        if args.command == "add-employee":
            await add_employee(store, args)
        elif args.command == "list":
            await list_employees(store)
        elif args.command == "set-password":
            await set_passwords(store, args)
    finally:
        await store.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage employees of the vacation tracker")
    parser.add_argument("--database-url", default=config.DATABASE_URL)
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add-employee", help="create or replace an employee record")
    add.add_argument("--id", required=True)
    add.add_argument("--name", required=True)
    add.add_argument("--department", required=True)
    add.add_argument("--email", required=True)
    add.add_argument("--hire-date", required=True, help="YYYY-MM-DD")
    add.add_argument("--admin", action="store_true")

    sub.add_parser("list", help="list employees and whether they have a password")

    pw = sub.add_parser("set-password", help="set or replace passwords")
    group = pw.add_mutually_exclusive_group(required=True)
    group.add_argument("who", nargs="?", help="employee email or id")
    group.add_argument("--all", action="store_true", help="every employee without a password")
    return parser


def main(argv=None) -> int:
    config.configure_logging()
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(run(args))
    except AppError as e:
        print(f"✗ {e.detail}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
