"""
HTML fragments for the front desk sections.

Functions here only read the store (through views) and return markup; the
browser swaps the returned fragment into the matching section.
"""
import math
from datetime import datetime
from html import escape
from typing import Optional

import views
from database import Store

ORDER_STATUS_LABELS = {"active": "Active", "completed": "Completed"}
APPOINTMENT_STATUS_LABELS = {"confirmed": "Confirmed", "pending": "Pending"}
SECTIONS = ("home", "patients", "orders", "invoices", "appointments", "notifications")


def _e(value) -> str:
    return escape("" if value is None else str(value))


def _money(value, prefix: str) -> str:
    # raw amount as entered: 120.0 -> $120, 99.5 -> $99.5
    if value is None or math.isnan(value):
        return _e(f"{prefix}NaN")
    if float(value).is_integer():
        value = int(value)
    return _e(f"{prefix}{value}")


# -----------------------------
# Home
# -----------------------------

def stats_cards(store: Store, now: Optional[datetime] = None, prefix: str = "$") -> str:
    stats = views.dashboard_stats(store, now, prefix)
    labels = {
        "totalPatients": "Patients",
        "activeOrders": "Active orders",
        "todayAppointments": "Today's appointments",
        "monthlyRevenue": "Monthly revenue",
    }
    return "".join(
        f'<div class="stat-card" id="{key}"><h4>{labels[key]}</h4><p>{_e(value)}</p></div>'
        for key, value in stats.items()
    )


def recent_orders(store: Store, prefix: str = "$") -> str:
    rows = []
    for order in views.recent_orders(store):
        rows.append(
            '<div class="list-item">'
            f"<div><p>{_e(views.patient_name(store, order.patient_id))}</p>"
            f"<p>{_e(order.lens_type)} - {_e(order.material or 'Not specified')}</p></div>"
            f"<div><p>{_money(order.price, prefix)}</p>"
            f'<p class="status-{order.status}">{ORDER_STATUS_LABELS[order.status]}</p></div>'
            "</div>"
        )
    return "".join(rows)


def upcoming_appointments(store: Store, now: Optional[datetime] = None) -> str:
    rows = []
    for apt in views.upcoming_appointments(store, now):
        rows.append(
            '<div class="list-item">'
            f"<div><p>{_e(views.patient_name(store, apt.patient_id))}</p>"
            f"<p>{_e(apt.type)} - {_e(apt.date)} {_e(apt.time)}</p></div>"
            f'<div><p class="status-{apt.status}">{APPOINTMENT_STATUS_LABELS[apt.status]}</p></div>'
            "</div>"
        )
    return "".join(rows)


def home(store: Store, now: Optional[datetime] = None, prefix: str = "$") -> str:
    return (
        f'<div id="stats">{stats_cards(store, now, prefix)}</div>'
        f'<div id="recentOrders">{recent_orders(store, prefix)}</div>'
        f'<div id="upcomingAppointments">{upcoming_appointments(store, now)}</div>'
    )


# -----------------------------
# Tables
# -----------------------------

def patients_table(store: Store) -> str:
    return "".join(
        "<tr>"
        f"<td>{_e(p.name)}</td><td>{_e(p.phone)}</td><td>{_e(p.email or '-')}</td>"
        f'<td><button data-action="edit-patient" data-id="{_e(p.id)}">Edit</button>'
        f'<button data-action="delete-patient" data-id="{_e(p.id)}">Delete</button></td>'
        "</tr>"
        for p in store.patients
    )


def orders_table(store: Store, prefix: str = "$") -> str:
    rows = []
    for o in store.orders:
        toggle = "Complete" if o.status == "active" else "Reopen"
        rows.append(
            "<tr>"
            f"<td>{_e(views.patient_name(store, o.patient_id))}</td>"
            f"<td>{_e(o.lens_type)}</td><td>{_e(o.material or '-')}</td>"
            f"<td>{_money(o.price, prefix)}</td>"
            f'<td><span class="status-{o.status}">{ORDER_STATUS_LABELS[o.status]}</span></td>'
            f'<td><button data-action="toggle-order" data-id="{_e(o.id)}">{toggle}</button>'
            f'<button data-action="delete-order" data-id="{_e(o.id)}">Delete</button></td>'
            "</tr>"
        )
    return "".join(rows)


def invoices_table(store: Store, prefix: str = "$") -> str:
    return "".join(
        "<tr>"
        f"<td>{_e(inv.number)}</td><td>{_e(views.patient_name(store, inv.patient_id))}</td>"
        f"<td>{_e(inv.concept)}</td><td>{_money(inv.amount, prefix)}</td>"
        f"<td>{_e(inv.date)}</td><td>{_e(inv.payment_method)}</td>"
        f'<td><button data-action="print-invoice" data-id="{_e(inv.id)}">Print</button>'
        f'<button data-action="delete-invoice" data-id="{_e(inv.id)}">Delete</button></td>'
        "</tr>"
        for inv in store.invoices
    )


def appointments_table(store: Store) -> str:
    return "".join(
        "<tr>"
        f"<td>{_e(views.patient_name(store, a.patient_id))}</td>"
        f"<td>{_e(a.date)}</td><td>{_e(a.time)}</td><td>{_e(a.type)}</td>"
        f'<td><span class="status-{a.status}">{APPOINTMENT_STATUS_LABELS[a.status]}</span></td>'
        f'<td><button data-action="remind-appointment" data-id="{_e(a.id)}">Remind</button>'
        f'<button data-action="delete-appointment" data-id="{_e(a.id)}">Delete</button></td>'
        "</tr>"
        for a in store.appointments
    )


def message_history(store: Store) -> str:
    return "".join(
        "<tr>"
        f"<td>{_e(m.patient_name)}</td><td>{_e(m.type)}</td>"
        f'<td class="truncate">{_e(m.message)}</td>'
        f"<td>{_e(m.sent_at.date().isoformat() if m.sent_at else '')}</td>"
        '<td><span class="status-sent">Sent</span></td>'
        "</tr>"
        for m in views.message_history(store)
    )


def patient_options(store: Store) -> str:
    options = ['<option value="">Select patient...</option>']
    options.extend(f'<option value="{_e(p.id)}">{_e(p.name)}</option>' for p in store.patients)
    return "".join(options)


def report_summary(summary: views.ReportSummary, prefix: str = "$") -> str:
    return (
        f'<div class="report-card"><h4>Invoices ({_e(summary.period)})</h4><p>{summary.count}</p></div>'
        f'<div class="report-card"><h4>Total revenue</h4><p>{_e(views.format_money(summary.total, prefix))}</p></div>'
        f'<div class="report-card"><h4>Average</h4><p>{_e(views.format_money(summary.average, prefix))}</p></div>'
    )


# -----------------------------
# Print
# -----------------------------

def invoice_document(store: Store, invoice_id: str, clinic_name: str, prefix: str = "$") -> Optional[str]:
    invoice = store.find("invoices", invoice_id)
    if not invoice:
        return None
    patient = store.find("patients", invoice.patient_id)
    if not patient:
        return None
    return f"""
<div style="font-family: Arial, sans-serif; padding: 20px;">
    <h2 style="text-align: center; color: #1e3a8a;">INVOICE</h2>
    <p><strong>Number:</strong> {_e(invoice.number)}</p>
    <p><strong>Date:</strong> {_e(invoice.date)}</p>
    <p><strong>Patient:</strong> {_e(patient.name)}</p>
    <p><strong>Phone:</strong> {_e(patient.phone)}</p>
    <hr style="margin: 20px 0;">
    <p><strong>Concept:</strong> {_e(invoice.concept)}</p>
    <p><strong>Amount:</strong> {_money(invoice.amount, prefix)}</p>
    <p><strong>Payment method:</strong> {_e(invoice.payment_method)}</p>
    <hr style="margin: 20px 0;">
    <p style="text-align: center; font-size: 12px; color: #666;">
        Thank you for trusting {_e(clinic_name)}
    </p>
</div>
"""


def render_section(store: Store, name: str, now: Optional[datetime] = None, prefix: str = "$") -> str:
    if name == "home":
        return home(store, now, prefix)
    if name == "patients":
        return patients_table(store)
    if name == "orders":
        return orders_table(store, prefix)
    if name == "invoices":
        return invoices_table(store, prefix)
    if name == "appointments":
        return appointments_table(store)
    if name == "notifications":
        return message_history(store)
    raise KeyError(name)
