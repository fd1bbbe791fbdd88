"""
Command-line front end for the business dashboard
"""

import argparse
import getpass
import json
import logging
import sys
from typing import Any, List, Optional

from pydantic import BaseModel

from .billing import AssignmentBoard, BillingBoard, billing_summary
from .config import get_settings
from .context import DashboardContext
from .logging_conf import configure_logging
from .models import AssignmentStatus, DateRange
from .presentation import account_type_chip, assignment_status_chip, format_currency, format_money
from .receipt import open_in_browser
from .screens import AnalyticsScreen, FinancialAccountsScreen, LoginScreen, RegisterScreen, Screen
from .services.analytics import TABS


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1


def _dump(data: Any) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    elif isinstance(data, list):
        data = [d.model_dump(mode="json", by_alias=True) if isinstance(d, BaseModel) else d for d in data]
    return json.dumps(data, indent=2, default=str)


def _report(screen: Screen) -> int:
    if screen.error:
        print(f"Error: {screen.error}", file=sys.stderr)
        return EXIT_ERROR
    if screen.success:
        print(screen.success)
    return EXIT_OK


def _prompt_password(value: Optional[str], prompt: str = "Password: ") -> str:
    return value if value is not None else getpass.getpass(prompt)


# -- auth ------------------------------------------------------------------

def cmd_login(ctx: DashboardContext, args) -> int:
    screen = LoginScreen(ctx.session)
    if not screen.submit(args.email, _prompt_password(args.password)):
        return _report(screen)
    print(f"Signed in as {ctx.session.user.full_name or ctx.session.user.email} "
          f"({ctx.session.business.display_name})")
    return EXIT_OK


def cmd_register(ctx: DashboardContext, args) -> int:
    password = _prompt_password(args.password)
    confirm = args.confirm_password
    if confirm is None:
        confirm = password if args.password is not None else getpass.getpass("Confirm password: ")
    screen = RegisterScreen(ctx.session)
    ok = screen.submit({
        "email": args.email,
        "password": password,
        "confirm_password": confirm,
        "first_name": args.first_name,
        "last_name": args.last_name,
        "business_name": args.business_name,
    })
    if not ok:
        return _report(screen)
    print(f"Registered {ctx.session.user.email} for {ctx.session.business.display_name}")
    return EXIT_OK


def cmd_logout(ctx: DashboardContext, args) -> int:
    ctx.session.logout()
    print("Signed out")
    return EXIT_OK


def cmd_whoami(ctx: DashboardContext, args) -> int:
    user, business = ctx.session.user, ctx.session.business
    print(f"{user.full_name or user.email} <{user.email}>")
    print(f"Business: {business.display_name}")
    return EXIT_OK


# -- analytics -------------------------------------------------------------

def cmd_analytics(ctx: DashboardContext, args) -> int:
    screen = AnalyticsScreen(ctx.analytics, currency=ctx.settings.CURRENCY)
    screen.date_range = DateRange.parse(args.range)
    if args.tab == "overview":
        screen.refresh()
        if screen.error:
            return _report(screen)
        print(f"Overview ({screen.date_range.label})")
        for label, value in screen.overview_cards():
            print(f"  {label:<20} {value}")
        return EXIT_OK

    data = screen.load_tab(args.tab)
    if data is None:
        print(f"Error: {screen.tab_errors.get(args.tab, 'Failed to load data')}", file=sys.stderr)
        return EXIT_ERROR
    print(_dump(data))
    return EXIT_OK


# -- billing ---------------------------------------------------------------

def _billing_board(ctx: DashboardContext) -> BillingBoard:
    return BillingBoard(ctx.billing, ctx.receipts, session=ctx.session, vat_rate=ctx.settings.VAT_RATE)


def cmd_billing_list(ctx: DashboardContext, args) -> int:
    board = _billing_board(ctx)
    if not board.load():
        return _report(board)
    if not board.groups:
        print("No services awaiting billing")
        return EXIT_OK
    summary = billing_summary(board.groups, ctx.settings.VAT_RATE)
    for customer_id, rows in board.groups.items():
        totals = summary[customer_id]
        print(f"{rows[0].customer_name} ({rows[0].customer_phone}) [customer {customer_id}]")
        for a in rows:
            chip = assignment_status_chip(a.status)
            print(f"  #{a.id:<6} {a.service_name:<24} {a.employee_name:<16} "
                  f"{chip.label:<12} {format_money(a.service_price):>10}")
        print(f"  Total incl. VAT: {format_money(totals.total)}")
    return EXIT_OK


def cmd_billing_invoice(ctx: DashboardContext, args) -> int:
    board = _billing_board(ctx)
    if not board.load():
        return _report(board)
    if args.assignment:
        for assignment_id in args.assignment:
            try:
                board.toggle(assignment_id)
            except KeyError:
                print(f"Error: assignment {assignment_id} is not awaiting billing", file=sys.stderr)
                return EXIT_ERROR
    else:
        board.toggle_customer(args.customer)

    invoice = board.bill_customer(args.customer, payment_method=args.payment_method)
    if invoice is None:
        return _report(board)

    print(board.success)
    customer = board.customer(args.customer)
    print(ctx.receipts.render_text(invoice, business=ctx.session.business, user=ctx.session.user,
                                   customer=customer))
    path = ctx.receipts.save(invoice, board.last_receipt)
    print(f"Receipt saved to {path}")
    if args.open:
        open_in_browser(path)
    return EXIT_OK


# -- assignments -----------------------------------------------------------

def cmd_assignments_list(ctx: DashboardContext, args) -> int:
    board = AssignmentBoard(ctx.billing, AssignmentStatus(args.status) if args.status else None)
    if not board.load():
        return _report(board)
    for a in board.assignments:
        chip = assignment_status_chip(a.status)
        print(f"#{a.id:<6} {a.customer_name:<20} {a.service_name:<24} "
              f"{a.employee_name:<16} {chip.label}")
    pending = board.pending_bookings()
    if pending:
        print(f"{len(pending)} booking(s) waiting for an employee")
    return EXIT_OK


def cmd_assignments_complete(ctx: DashboardContext, args) -> int:
    board = AssignmentBoard(ctx.billing)
    board.load()
    board.complete(args.id)
    return _report(board)


# -- financial accounts ----------------------------------------------------

def cmd_accounts_list(ctx: DashboardContext, args) -> int:
    screen = FinancialAccountsScreen(ctx.accounts)
    if not screen.load():
        return _report(screen)
    currency = ctx.settings.CURRENCY
    for account in screen.accounts:
        chip = account_type_chip(account.account_type)
        status = "" if account.is_active else "  (inactive)"
        print(f"#{account.id:<4} {account.account_name:<24} {chip.label:<14} "
              f"{format_currency(account.current_balance, currency, 2):>16}{status}")
    print(f"Total Balance: {format_currency(screen.total_balance(), currency, 2)}")
    return EXIT_OK


# -- parser ----------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bizdash", description="Business dashboard client")
    parser.add_argument("--api-url", help="Backend base URL (overrides BIZDASH_API_BASE_URL)")
    parser.add_argument("--log-level", help="Logging level")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Sign in")
    p.add_argument("email")
    p.add_argument("--password")
    p.set_defaults(func=cmd_login, public=True)

    p = sub.add_parser("register", help="Create an account and business")
    p.add_argument("email")
    p.add_argument("--first-name", required=True)
    p.add_argument("--last-name", required=True)
    p.add_argument("--business-name", required=True)
    p.add_argument("--password")
    p.add_argument("--confirm-password")
    p.set_defaults(func=cmd_register, public=True)

    p = sub.add_parser("logout", help="Sign out")
    p.set_defaults(func=cmd_logout)

    p = sub.add_parser("whoami", help="Show the signed-in user")
    p.set_defaults(func=cmd_whoami)

    p = sub.add_parser("analytics", help="Show an analytics tab")
    p.add_argument("tab", choices=list(TABS))
    p.add_argument("--range", default=DateRange.THIS_MONTH.value,
                   choices=[r.value for r in DateRange])
    p.set_defaults(func=cmd_analytics)

    billing = sub.add_parser("billing", help="Bill customer assignments").add_subparsers(
        dest="billing_command", required=True)
    p = billing.add_parser("list", help="Assignments awaiting billing, by customer")
    p.set_defaults(func=cmd_billing_list)
    p = billing.add_parser("invoice", help="Invoice a customer's assignments")
    p.add_argument("--customer", type=int, required=True)
    p.add_argument("--assignment", type=int, action="append",
                   help="Assignment id to bill (repeatable; default: all of the customer's)")
    p.add_argument("--payment-method", default="Cash")
    p.add_argument("--open", action="store_true", help="Open the receipt in a browser")
    p.set_defaults(func=cmd_billing_invoice)

    assignments = sub.add_parser("assignments", help="Customer assignments").add_subparsers(
        dest="assignments_command", required=True)
    p = assignments.add_parser("list", help="List assignments")
    p.add_argument("--status", choices=[s.value for s in AssignmentStatus])
    p.set_defaults(func=cmd_assignments_list)
    p = assignments.add_parser("complete", help="Mark an assignment completed")
    p.add_argument("id", type=int)
    p.set_defaults(func=cmd_assignments_complete)

    accounts = sub.add_parser("accounts", help="Financial accounts").add_subparsers(
        dest="accounts_command", required=True)
    p = accounts.add_parser("list", help="List accounts and the total balance")
    p.set_defaults(func=cmd_accounts_list)

    return parser


def main(argv: Optional[List[str]] = None, context: Optional[DashboardContext] = None) -> int:
    args = build_parser().parse_args(argv)

    if context is None:
        overrides = {"API_BASE_URL": args.api_url} if args.api_url else {}
        settings = get_settings(**overrides)
        configure_logging(args.log_level or settings.LOG_LEVEL,
                          json_output=args.json_logs or settings.LOG_JSON)
        context = DashboardContext(settings)

    logger.debug(f"Running {args.command} against {context.settings.base_url}")
    try:
        if not context.restore() and not getattr(args, "public", False):
            print("Not signed in. Run `bizdash login EMAIL` first.", file=sys.stderr)
            return EXIT_ERROR
        return args.func(context, args)
    finally:
        context.close()


if __name__ == "__main__":
    sys.exit(main())
