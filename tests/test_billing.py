from decimal import Decimal

import pytest

from bizdash.billing import (
    AssignmentBoard,
    BillingBoard,
    BillingTotals,
    billing_totals,
    group_by_customer,
)
from bizdash.models import Assignment, AssignmentStatus
from bizdash.services.service_billing import ServiceBillingService
from bizdash.session import SessionStore

from conftest import assignment, envelope, make_response


ASSIGNMENTS_PATH = "/service-billing/assignments/billing"
INVOICE_PATH = "/service-billing/assignments/invoice"


def _invoice(number="SB-0001", subtotal="3000.00", vat="480.00", total="3480.00"):
    return {"invoice_number": number, "customer_id": 1, "customer_name": "Customer 1",
            "subtotal": subtotal, "vat_amount": vat, "total_amount": total,
            "created_at": "2024-05-01T12:00:00"}


@pytest.fixture
def billing(billing_api):
    return ServiceBillingService(billing_api)


@pytest.fixture
def board(billing, signed_in):
    session = SessionStore(signed_in)
    session.restore()
    return BillingBoard(billing, session=session)


class TestTotals:

    def test_sixteen_percent_vat(self):
        totals = billing_totals([Decimal("1500"), "1500.00", 0])
        assert totals == BillingTotals(Decimal("3000.00"), Decimal("480.00"), Decimal("3480.00"))

    def test_rounds_half_up_to_cents(self):
        totals = billing_totals(["10.03"])
        assert totals.vat == Decimal("1.60")
        assert totals.total == Decimal("11.63")

    def test_empty(self):
        assert billing_totals([]) == (Decimal("0.00"), Decimal("0.00"), Decimal("0.00"))

    def test_custom_rate(self):
        assert billing_totals([100], vat_rate=0.1).total == Decimal("110.00")


class TestGrouping:

    def test_groups_preserve_fetch_order(self):
        rows = [Assignment.model_validate(assignment(i, customer_id=c))
                for i, c in [(1, 2), (2, 1), (3, 2), (4, 3)]]
        grouped = group_by_customer(rows)
        assert list(grouped) == [2, 1, 3]
        assert [a.id for a in grouped[2]] == [1, 3]


class TestBillingBoard:

    def _load(self, board, http, rows):
        http.add("GET", ASSIGNMENTS_PATH, envelope({"assignments": rows}))
        assert board.load() is True

    def test_billed_assignments_are_filtered_out(self, board, http):
        self._load(board, http, [assignment(1), assignment(2, status="billed"),
                                 assignment(3, status="in_progress")])
        assert [a.id for a in board.assignments] == [1, 3]

    def test_toggle_and_selection_state(self, board, http):
        self._load(board, http, [assignment(1), assignment(2), assignment(3, customer_id=2)])

        assert board.selection_state(1) == BillingBoard.NONE
        board.toggle(1)
        assert board.selection_state(1) == BillingBoard.PARTIAL
        board.toggle(2)
        assert board.selection_state(1) == BillingBoard.ALL
        board.toggle(2)
        assert board.selected == [1]

    def test_toggle_unknown_assignment(self, board, http):
        self._load(board, http, [assignment(1)])
        with pytest.raises(KeyError):
            board.toggle(99)

    def test_toggle_customer_selects_then_clears(self, board, http):
        self._load(board, http, [assignment(1), assignment(2), assignment(3, customer_id=2)])
        board.toggle(1)

        board.toggle_customer(1)
        assert sorted(board.selected) == [1, 2]

        board.toggle_customer(1)
        assert board.selected == []

    def test_preview_uses_only_selected(self, board, http):
        self._load(board, http, [assignment(1, price="1000"), assignment(2, price="500")])
        board.toggle(2)
        assert board.preview(1).total == Decimal("580.00")

    def test_reload_prunes_vanished_selection(self, board, http):
        self._load(board, http, [assignment(1), assignment(2)])
        board.toggle_customer(1)
        http.routes.clear()
        self._load(board, http, [assignment(2)])
        assert board.selected == [2]

    def test_empty_selection_makes_no_request(self, board, http):
        self._load(board, http, [assignment(1)])
        assert board.bill_customer(1) is None
        assert board.error == "Please select at least one service to bill"
        assert http.paths() == [f"GET {ASSIGNMENTS_PATH}"]

    def test_bill_customer_success(self, board, http):
        self._load(board, http, [assignment(1), assignment(2), assignment(3, customer_id=2)])
        board.toggle_customer(1)
        board.toggle(3)
        http.add("POST", INVOICE_PATH, envelope({"invoice": _invoice()}))
        http.routes[("GET", ASSIGNMENTS_PATH)] = [
            make_response(200, envelope({"assignments": [assignment(3, customer_id=2)]}))
        ]

        invoice = board.bill_customer(1)

        assert invoice.invoice_number == "SB-0001"
        post = [c for c in http.calls if c.method == "POST"][0]
        assert post.json == {"customer_id": 1, "assignment_ids": [1, 2], "payment_method": "Cash",
                             "notes": "Service billing for Customer 1"}
        assert board.success == "Invoice SB-0001 created successfully!"
        assert board.error == ""
        assert board.selected == [3]
        assert [a.id for a in board.assignments] == [3]
        assert "SB-0001" in board.last_receipt
        assert "Glow Salon &amp; Spa" in board.last_receipt
        assert "$3,480.00" in board.last_receipt

    def test_receipt_uses_backend_totals(self, board, http):
        self._load(board, http, [assignment(1, price="1000")])
        board.toggle(1)
        http.add("POST", INVOICE_PATH, envelope({"invoice": _invoice(subtotal="1000.00", vat="150.00",
                                                                     total="1150.00")}))
        board.bill_customer(1)
        assert "$1,150.00" in board.last_receipt
        assert "$1,160.00" not in board.last_receipt

    def test_rejection_is_surfaced(self, board, http):
        self._load(board, http, [assignment(1)])
        board.toggle(1)
        http.add("POST", INVOICE_PATH, {"success": False, "message": "Assignment 1 is already billed"},
                 status=400)

        assert board.bill_customer(1) is None
        assert board.error == "Assignment 1 is already billed"
        assert board.success == ""
        assert board.selected == [1]
        assert board.last_invoice is None

    def test_rejection_without_message_uses_fallback(self, board, http):
        self._load(board, http, [assignment(1)])
        board.toggle(1)
        http.add("POST", INVOICE_PATH, None, status=500)
        board.bill_customer(1)
        assert board.error == "Failed to create invoice"

    def test_malformed_invoice_sets_alert(self, board, http):
        self._load(board, http, [assignment(1)])
        board.toggle(1)
        http.add("POST", INVOICE_PATH, envelope({"invoice": {"subtotal": "1500.00"}}))

        assert board.bill_customer(1) is None
        assert board.error == "Failed to create invoice"
        assert board.last_invoice is None

    def test_load_failure_sets_error(self, board, http):
        http.add("GET", ASSIGNMENTS_PATH, {"message": "Service unavailable"}, status=503)
        assert board.load() is False
        assert board.error == "Service unavailable"


class TestAssignmentBoard:

    def _script_load(self, http, assignments, bookings=()):
        http.add("GET", "/service-billing/assignments", envelope({"assignments": assignments}))
        http.add("GET", "/service-billing/customers", envelope({"customers": [{"id": 1, "name": "Bo"}]}))
        http.add("GET", "/service-billing/employees", envelope({"employees": [{"id": 11, "name": "Mary"}]}))
        http.add("GET", "/service-billing/services", envelope({"services": [
            {"id": 21, "service_name": "Haircut", "price": 1500, "estimated_duration": 30}]}))
        http.add("GET", "/service-billing/bookings", envelope({"bookings": list(bookings)}))

    def test_load(self, billing, http):
        self._script_load(http, [assignment(1, status="in_progress", booking_id=5)],
                          bookings=[{"id": 5, "status": "pending"}, {"id": 6, "status": "pending"},
                                    {"id": 7, "status": "assigned"}])
        board = AssignmentBoard(billing)
        assert board.load() is True
        assert board.employees[0].name == "Mary"
        assert [b.id for b in board.pending_bookings()] == [6]

    def test_status_filter_is_forwarded(self, billing, http):
        self._script_load(http, [])
        board = AssignmentBoard(billing)
        board.set_status_filter("completed")
        assert http.calls[0].params == {"status": "completed"}

    def test_create_requires_fields(self, billing, http):
        board = AssignmentBoard(billing)
        assert board.create(1, None, 21) is False
        assert board.error == "Customer, Employee, and Service are required"
        assert http.calls == []

    def test_create(self, billing, http):
        self._script_load(http, [])
        http.add("POST", "/service-billing/assignments", envelope({"assignment": assignment(2)}))
        board = AssignmentBoard(billing)
        assert board.create("1", "11", "21", notes="VIP") is True
        assert board.success == "Customer assigned to employee successfully!"
        post = [c for c in http.calls if c.method == "POST"][0]
        assert post.json == {"customer_id": 1, "employee_id": 11, "service_id": 21, "notes": "VIP"}

    def test_create_with_malformed_response_sets_alert(self, billing, http):
        http.add("POST", "/service-billing/assignments", envelope({"assignment": {"id": 2}}))
        board = AssignmentBoard(billing)
        assert board.create(1, 11, 21) is False
        assert board.error == "Failed to create assignment"
        assert board.success == ""

    def test_add_service_defaults(self, billing, http):
        self._script_load(http, [])
        http.add("POST", "/service-billing/assignments", envelope({}))
        board = AssignmentBoard(billing)
        current = Assignment.model_validate(assignment(1, status="in_progress"))

        assert board.add_service(current, 22) is True
        post = [c for c in http.calls if c.method == "POST"][0]
        assert post.json == {"customer_id": 1, "employee_id": 11, "service_id": 22,
                             "notes": "Additional service requested during Haircut"}
        assert board.success == "Additional service added for Customer 1!"

    def test_complete(self, billing, http):
        self._script_load(http, [assignment(1, status="in_progress")])
        http.add("POST", "/service-billing/assignments/1/complete", envelope({}))
        board = AssignmentBoard(billing)
        board.load()

        assert board.complete(1) is True
        assert board.success == "Service marked as completed!"

    def test_complete_refuses_backward_transition(self, billing, http):
        self._script_load(http, [assignment(1, status="billed")])
        board = AssignmentBoard(billing)
        board.load()

        assert board.complete(1) is False
        assert board.error == "Assignment is already billed"
        assert not any(c.method == "POST" for c in http.calls)

    def test_complete_failure(self, billing, http):
        self._script_load(http, [assignment(1, status="in_progress")])
        http.add("POST", "/service-billing/assignments/1/complete", {"message": "Not yours"}, status=403)
        board = AssignmentBoard(billing)
        board.load()
        assert board.complete(1) is False
        assert board.error == "Not yours"


class TestAssignmentStatus:

    @pytest.mark.parametrize("start, target, allowed", [
        ("in_progress", "completed", True),
        ("in_progress", "billed", True),
        ("completed", "billed", True),
        ("completed", "in_progress", False),
        ("billed", "completed", False),
        ("billed", "billed", False),
    ])
    def test_forward_only(self, start, target, allowed):
        assert AssignmentStatus(start).can_transition_to(AssignmentStatus(target)) is allowed
