from unittest.mock import patch

import pytest

from bizdash.cli import EXIT_ERROR, EXIT_OK, main

from conftest import BUSINESS, USER, assignment, envelope


INVOICE = {"invoice_number": "SB-0009", "customer_id": 1, "customer_name": "Customer 1",
           "customer_phone": "0700000001", "subtotal": "3000.00", "vat_amount": "480.00",
           "total_amount": "3480.00", "created_at": "2024-05-01T12:00:00"}


def _script_assignment_board(http, rows):
    http.add("GET", "/service-billing/assignments", envelope({"assignments": rows}))
    http.add("GET", "/service-billing/customers", envelope({"customers": []}))
    http.add("GET", "/service-billing/employees", envelope({"employees": []}))
    http.add("GET", "/service-billing/services", envelope({"services": []}))
    http.add("GET", "/service-billing/bookings", envelope({"bookings": []}))


class TestRouteGuard:

    def test_requires_sign_in(self, context, http, capsys):
        assert main(["whoami"], context=context) == EXIT_ERROR
        assert "Not signed in" in capsys.readouterr().err
        assert http.calls == []
        assert http.closed is True

    def test_unknown_command_is_a_usage_error(self, context):
        with pytest.raises(SystemExit) as exc:
            main(["refund"], context=context)
        assert exc.value.code == 2


class TestAuthCommands:

    def test_login(self, context, http, storage, capsys):
        http.add("POST", "/auth/login", envelope({"user": USER, "business": BUSINESS, "token": "tok-9"}))

        assert main(["login", "owner@example.com", "--password", "secret1"], context=context) == EXIT_OK
        assert "Signed in as Jane Doe (Glow Salon & Spa)" in capsys.readouterr().out
        assert storage.get_item("token") == "tok-9"

    def test_login_failure(self, context, http, capsys):
        http.add("POST", "/auth/login", {"success": False, "message": "Invalid credentials"}, status=400)
        assert main(["login", "owner@example.com", "--password", "x"], context=context) == EXIT_ERROR
        assert "Error: Invalid credentials" in capsys.readouterr().err

    def test_failed_relogin_keeps_session(self, signed_in, context, http, capsys):
        http.add("POST", "/auth/login", {"message": "Invalid credentials"}, status=401)
        assert main(["login", "owner@example.com", "--password", "x"], context=context) == EXIT_ERROR
        assert "Error: Invalid credentials" in capsys.readouterr().err
        assert signed_in.get_item("token") == "tok-123"

    def test_whoami(self, signed_in, context, capsys):
        assert main(["whoami"], context=context) == EXIT_OK
        out = capsys.readouterr().out
        assert "Jane Doe <owner@example.com>" in out
        assert "Business: Glow Salon & Spa" in out

    def test_logout(self, signed_in, context, http):
        http.add("POST", "/auth/logout", envelope(None))
        assert main(["logout"], context=context) == EXIT_OK
        assert signed_in.get_item("token") is None
        assert http.calls[0].headers["Authorization"] == "Bearer tok-123"


class TestAnalyticsCommand:

    def test_overview(self, signed_in, context, http, capsys):
        http.add("GET", "/analytics/overview", envelope({"totalSales": 50000}))
        assert main(["analytics", "overview", "--range", "this_year"], context=context) == EXIT_OK
        out = capsys.readouterr().out
        assert "Overview (This Year)" in out
        assert "KES 50,000" in out
        assert http.calls[0].params == {"dateRange": "this_year"}

    def test_tab_failure(self, signed_in, context, http, capsys):
        http.add("GET", "/analytics/revenue-trends", None, status=500)
        assert main(["analytics", "revenue-trends"], context=context) == EXIT_ERROR
        assert "Failed to load revenue trends" in capsys.readouterr().err


class TestBillingCommands:

    def test_list(self, signed_in, context, http, capsys):
        http.add("GET", "/service-billing/assignments/billing",
                 envelope({"assignments": [assignment(1), assignment(2, price="500")]}))
        assert main(["billing", "list"], context=context) == EXIT_OK
        out = capsys.readouterr().out
        assert "Customer 1 (0700000001) [customer 1]" in out
        assert "$1,500.00" in out
        assert "Total incl. VAT: $2,320.00" in out
        assert "KES" not in out

    def test_invoice(self, signed_in, context, http, tmp_path, capsys):
        context.receipts.output_dir = tmp_path
        http.add("GET", "/service-billing/assignments/billing",
                 envelope({"assignments": [assignment(1), assignment(2)]}))
        http.add("POST", "/service-billing/assignments/invoice", envelope({"invoice": INVOICE}))

        with patch("bizdash.cli.open_in_browser") as opener:
            code = main(["billing", "invoice", "--customer", "1", "--open"], context=context)

        assert code == EXIT_OK
        out = capsys.readouterr().out
        assert "Invoice SB-0009 created successfully!" in out
        assert "$3,480.00" in out
        receipt = tmp_path / "receipt-SB-0009.html"
        assert receipt.exists()
        opener.assert_called_once_with(receipt)
        post = [c for c in http.calls if c.method == "POST"][0]
        assert post.json["assignment_ids"] == [1, 2]

    def test_invoice_unknown_assignment(self, signed_in, context, http, capsys):
        http.add("GET", "/service-billing/assignments/billing", envelope({"assignments": [assignment(1)]}))
        code = main(["billing", "invoice", "--customer", "1", "--assignment", "7"], context=context)
        assert code == EXIT_ERROR
        assert "assignment 7 is not awaiting billing" in capsys.readouterr().err

    def test_invoice_rejected(self, signed_in, context, http, capsys):
        http.add("GET", "/service-billing/assignments/billing", envelope({"assignments": [assignment(1)]}))
        http.add("POST", "/service-billing/assignments/invoice",
                 {"success": False, "message": "Assignment 1 is already billed"}, status=400)
        assert main(["billing", "invoice", "--customer", "1"], context=context) == EXIT_ERROR
        assert "Error: Assignment 1 is already billed" in capsys.readouterr().err


class TestAssignmentCommands:

    def test_complete(self, signed_in, context, http, capsys):
        _script_assignment_board(http, [assignment(4, status="in_progress")])
        http.add("POST", "/service-billing/assignments/4/complete", envelope({}))
        assert main(["assignments", "complete", "4"], context=context) == EXIT_OK
        assert "Service marked as completed!" in capsys.readouterr().out

    def test_list_with_status(self, signed_in, context, http, capsys):
        _script_assignment_board(http, [assignment(4, status="in_progress")])
        assert main(["assignments", "list", "--status", "in_progress"], context=context) == EXIT_OK
        assert http.calls[0].params == {"status": "in_progress"}
        assert "In Progress" in capsys.readouterr().out


class TestAccountCommands:

    def test_list_with_total(self, signed_in, context, http, capsys):
        http.add("GET", "/financial-accounts", envelope({"accounts": [
            {"id": 1, "account_name": "Till", "account_type": "cash", "current_balance": "1500.50"},
            {"id": 2, "account_name": "M-Pesa", "account_type": "mobile_money", "current_balance": "2000",
             "is_active": False},
        ]}))
        assert main(["accounts", "list"], context=context) == EXIT_OK
        out = capsys.readouterr().out
        assert "Mobile Money" in out
        assert "(inactive)" in out
        assert "Total Balance: KES 3,500.50" in out

    def test_list_failure(self, signed_in, context, http, capsys):
        http.add("GET", "/financial-accounts", None, status=500)
        assert main(["accounts", "list"], context=context) == EXIT_ERROR
        assert "Error: Failed to load financial accounts" in capsys.readouterr().err
