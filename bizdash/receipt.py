"""
Receipt Generation

Renders a service invoice as an 80mm thermal receipt: a standalone HTML
document that prints itself when opened, or the same fields as
fixed-width text.
"""

import html
import logging
import os
import webbrowser
from decimal import Decimal
from pathlib import Path
from string import Template
from typing import Iterable, List, NamedTuple, Optional, Union

from .models import Assignment, Business, ServiceInvoice, User, round_half_up
from .presentation import format_money


logger = logging.getLogger(__name__)

TEXT_WIDTH = 42


class ReceiptCustomer(NamedTuple):
    id: Optional[int]
    name: str
    phone: str


class ReceiptLine(NamedTuple):
    service_name: str
    employee_name: Optional[str]
    duration: Optional[int]
    price: Decimal


_HTML = Template("""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Service Receipt - $invoice_number</title>
  <style>
    @media print { @page { margin: 0.5cm; size: 80mm auto; } }
    body { font-family: 'Courier New', monospace; width: 80mm; margin: 0 auto; padding: 10px; font-size: 12px; }
    .header { text-align: center; border-bottom: 2px dashed #000; padding-bottom: 10px; margin-bottom: 10px; }
    .header h2 { margin: 5px 0; font-size: 18px; }
    .info { margin: 10px 0; font-size: 11px; }
    table { width: 100%; margin: 10px 0; border-collapse: collapse; }
    th { border-bottom: 1px solid #000; padding: 5px 2px; text-align: left; font-size: 11px; }
    td { padding: 5px 2px; font-size: 11px; }
    .employee { font-size: 10px; color: #666; font-style: italic; }
    .totals { margin-top: 10px; padding-top: 10px; border-top: 2px dashed #000; }
    .totals-row { display: flex; justify-content: space-between; padding: 3px 0; font-size: 12px; }
    .total-final { font-weight: bold; font-size: 14px; border-top: 1px solid #000; margin-top: 5px; padding-top: 5px; }
    .footer { text-align: center; margin-top: 15px; padding-top: 10px; border-top: 2px dashed #000; font-size: 11px; }
  </style>
</head>
<body>
  <div class="header">
    <h2>$business_name</h2>
    <p>$business_address</p>
    <p>Tel: $business_phone | Email: $business_email</p>
  </div>
  <div class="info">
    <div><strong>Invoice:</strong> $invoice_number</div>
    <div><strong>Date:</strong> $date</div>
    <div><strong>Customer:</strong> $customer_name</div>
    <div><strong>Phone:</strong> $customer_phone</div>
  </div>
  <table>
    <thead>
      <tr><th>Service</th><th>Duration</th><th>Price</th></tr>
    </thead>
    <tbody>
$rows
    </tbody>
  </table>
  <div class="totals">
    <div class="totals-row"><span>Subtotal:</span><span>$subtotal</span></div>
    <div class="totals-row"><span>VAT ($vat_label):</span><span>$vat</span></div>
    <div class="totals-row total-final"><span>TOTAL:</span><span>$total</span></div>
  </div>
  <div class="footer">
    <p>Thank you for choosing us!</p>
    <p>We look forward to serving you again</p>
  </div>
  <script>
    window.onload = function() {
      window.print();
      setTimeout(function() { window.close(); }, 100);
    };
  </script>
</body>
</html>
""")

_ROW = Template("""      <tr>
        <td>$service$employee</td>
        <td>$duration</td>
        <td>$price</td>
      </tr>""")


class ReceiptRenderer:
    """Builds printable receipts from a created ServiceInvoice"""

    def __init__(self, vat_rate: Union[float, Decimal] = Decimal("0.16"),
                 output_dir: Optional[Union[str, Path]] = None):
        self.vat_rate = Decimal(str(vat_rate))
        self.output_dir = Path(output_dir).expanduser() if output_dir else None

    # -- field assembly ----------------------------------------------------

    @property
    def vat_label(self) -> str:
        return f"{(self.vat_rate * 100).normalize():f}%"

    @staticmethod
    def _header(business: Optional[Business], user: Optional[User]) -> dict:
        name = address = phone = email = None
        if business is not None:
            name = business.business_name or business.name
            address = business.address
            phone = business.phone
            email = business.email
        if not email and user is not None:
            email = user.email
        return {
            "business_name": name or "Service Business",
            "business_address": address or "Business Address",
            "business_phone": phone or "N/A",
            "business_email": email or "N/A",
        }

    @staticmethod
    def lines(invoice: ServiceInvoice,
              assignments: Optional[Iterable[Assignment]] = None) -> List[ReceiptLine]:
        """Line items from the billed assignments, else from the invoice's own items"""
        if assignments:
            return [
                ReceiptLine(a.service_name, a.employee_name or None, a.duration_minutes, a.service_price)
                for a in assignments
            ]
        return [
            ReceiptLine(
                item.service_name or "Service",
                item.employee_name,
                round_half_up(item.duration) if item.duration else None,
                item.price,
            )
            for item in invoice.items
        ]

    @staticmethod
    def _customer(invoice: ServiceInvoice, customer: Optional[ReceiptCustomer]) -> ReceiptCustomer:
        if customer is not None:
            return customer
        return ReceiptCustomer(invoice.customer_id, invoice.customer_name or "N/A",
                               invoice.customer_phone or "N/A")

    @staticmethod
    def _date(invoice: ServiceInvoice) -> str:
        if invoice.created_at is None:
            return "N/A"
        return invoice.created_at.strftime("%d/%m/%Y, %H:%M:%S")

    # -- output ------------------------------------------------------------

    def render_html(self, invoice: ServiceInvoice, customer: Optional[ReceiptCustomer] = None,
                    assignments: Optional[Iterable[Assignment]] = None,
                    business: Optional[Business] = None, user: Optional[User] = None) -> str:
        """
        Render the printable HTML receipt

        Totals always come from the invoice the backend returned, never from
        a local recomputation.

        Args:
            invoice: Created invoice
            customer: Billed customer (defaults to the invoice's customer fields)
            assignments: Assignments that were billed; line items fall back to invoice.items
            business: Business for the header
            user: Current user, whose email is used when the business has none

        Returns:
            Standalone HTML document
        """
        esc = html.escape
        customer = self._customer(invoice, customer)
        rows = []
        for line in self.lines(invoice, assignments):
            employee = f'\n          <div class="employee">by {esc(line.employee_name)}</div>' \
                if line.employee_name else ""
            rows.append(_ROW.substitute(
                service=esc(line.service_name),
                employee=employee,
                duration=f"{line.duration}min" if line.duration is not None else "-",
                price=esc(format_money(line.price)),
            ))
        if not rows:
            rows.append('      <tr><td colspan="3">Service items</td></tr>')

        fields = {k: esc(v) for k, v in self._header(business, user).items()}
        return _HTML.substitute(
            fields,
            invoice_number=esc(invoice.invoice_number),
            date=esc(self._date(invoice)),
            customer_name=esc(customer.name or "N/A"),
            customer_phone=esc(customer.phone or "N/A"),
            rows="\n".join(rows),
            subtotal=esc(format_money(invoice.subtotal)),
            vat_label=esc(self.vat_label),
            vat=esc(format_money(invoice.vat_amount)),
            total=esc(format_money(invoice.total_amount)),
        )

    def render_text(self, invoice: ServiceInvoice, customer: Optional[ReceiptCustomer] = None,
                    assignments: Optional[Iterable[Assignment]] = None,
                    business: Optional[Business] = None, user: Optional[User] = None) -> str:
        """Same fields as render_html, as fixed-width plain text"""
        width = TEXT_WIDTH
        header = self._header(business, user)
        customer = self._customer(invoice, customer)
        rule = "-" * width

        def pair(left: str, right: str) -> str:
            space = max(1, width - len(left) - len(right))
            return f"{left}{' ' * space}{right}"

        out = [
            header["business_name"].center(width).rstrip(),
            header["business_address"].center(width).rstrip(),
            f"Tel: {header['business_phone']}".center(width).rstrip(),
            f"Email: {header['business_email']}".center(width).rstrip(),
            rule,
            f"Invoice: {invoice.invoice_number}",
            f"Date: {self._date(invoice)}",
            f"Customer: {customer.name or 'N/A'}",
            f"Phone: {customer.phone or 'N/A'}",
            rule,
        ]
        for line in self.lines(invoice, assignments):
            duration = f"{line.duration}min" if line.duration is not None else "-"
            out.append(pair(line.service_name[:width - 12], format_money(line.price)))
            detail = f"  {duration}"
            if line.employee_name:
                detail += f"  by {line.employee_name}"
            out.append(detail[:width])
        out += [
            rule,
            pair("Subtotal:", format_money(invoice.subtotal)),
            pair(f"VAT ({self.vat_label}):", format_money(invoice.vat_amount)),
            pair("TOTAL:", format_money(invoice.total_amount)),
            rule,
            "Thank you for choosing us!".center(width).rstrip(),
            "We look forward to serving you again".center(width).rstrip(),
        ]
        return "\n".join(out) + "\n"

    def save(self, invoice: ServiceInvoice, document: str,
             directory: Optional[Union[str, Path]] = None) -> Path:
        """Write ``receipt-<invoice_number>.html`` and return its path"""
        target = Path(directory).expanduser() if directory else (self.output_dir or Path.cwd())
        target.mkdir(parents=True, exist_ok=True)
        safe_number = "".join(c if c.isalnum() or c in "-_" else "_" for c in invoice.invoice_number)
        path = target / f"receipt-{safe_number}.html"
        path.write_text(document, encoding="utf-8")
        logger.info(f"Saved receipt for invoice {invoice.invoice_number} to {path}")
        return path


def open_in_browser(path: Union[str, Path]) -> bool:
    """Hand a saved receipt to the default browser, which prints it on load"""
    uri = Path(os.path.abspath(path)).as_uri()
    opened = webbrowser.open(uri)
    if not opened:
        logger.warning(f"No browser available to open {uri}")
    return opened
