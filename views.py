"""
Derived views over the store.

Everything here is recomputed from the current collections on each call;
nothing is cached and nothing is mutated.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

from database import Store
from schemas import Appointment, Invoice, Message, Order

PATIENT_NOT_FOUND = "Patient not found"
REPORT_PERIODS = ("daily", "weekly", "monthly")


@dataclass
class ReportSummary:
    period: str
    count: int
    total: float
    average: float


def _amount(value: Optional[float]) -> float:
    # null amounts come from NaN values that went through persistence
    return math.nan if value is None else value


def _parse_date(value: str) -> Optional[datetime]:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except (TypeError, ValueError):
        return None


def _appointment_at(apt: Appointment) -> Optional[datetime]:
    for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(f"{apt.date} {apt.time}", fmt)
        except ValueError:
            continue
    return None


def _as_date(today: Union[date, datetime, None]) -> date:
    if today is None:
        return date.today()
    if isinstance(today, datetime):
        return today.date()
    return today


def format_money(value: float, prefix: str = "$") -> str:
    if math.isnan(value):
        return f"{prefix}NaN"
    return f"{prefix}{value:.2f}"


def patient_name(store: Store, patient_id: str) -> str:
    patient = store.find("patients", patient_id)
    return patient.name if patient else PATIENT_NOT_FOUND


def today_appointments(store: Store, today: Union[date, datetime, None] = None) -> List[Appointment]:
    key = _as_date(today).isoformat()
    return [a for a in store.appointments if a.date == key]


def active_orders(store: Store) -> List[Order]:
    return [o for o in store.orders if o.status == "active"]


def monthly_revenue_total(store: Store, now: Optional[datetime] = None) -> float:
    now = now or datetime.now()
    total = 0.0
    for inv in store.invoices:
        d = _parse_date(inv.date)
        if d and d.month == now.month and d.year == now.year:
            total += _amount(inv.amount)
    return total


def monthly_revenue(store: Store, now: Optional[datetime] = None, prefix: str = "$") -> str:
    return format_money(monthly_revenue_total(store, now), prefix)


def recent_orders(store: Store, limit: int = 5) -> List[Order]:
    return list(reversed(store.orders[-limit:]))


def upcoming_appointments(store: Store, now: Optional[datetime] = None, limit: int = 5) -> List[Appointment]:
    now = now or datetime.now()
    dated = [(at, a) for a in store.appointments for at in [_appointment_at(a)] if at and at >= now]
    dated.sort(key=lambda pair: pair[0])
    return [a for _, a in dated[:limit]]


def message_history(store: Store, limit: int = 10) -> List[Message]:
    return list(reversed(store.messages[-limit:]))


def _month_ago(now: datetime) -> datetime:
    # same day one calendar month back; overflowing days roll into the next month
    year, month = (now.year - 1, 12) if now.month == 1 else (now.year, now.month - 1)
    return datetime(year, month, 1) + timedelta(days=now.day - 1)


def report_invoices(store: Store, period: str, now: Optional[datetime] = None) -> List[Invoice]:
    now = now or datetime.now()
    if period == "daily":
        today = now.date().isoformat()
        return [inv for inv in store.invoices if inv.date == today]
    if period == "weekly":
        since = now - timedelta(days=7)
    elif period == "monthly":
        since = _month_ago(now)
    else:
        raise ValueError(f"Unknown report period: {period}")
    out = []
    for inv in store.invoices:
        d = _parse_date(inv.date)
        if d and d >= since:
            out.append(inv)
    return out


def report(store: Store, period: str, now: Optional[datetime] = None) -> ReportSummary:
    invoices = report_invoices(store, period, now)
    total = sum((_amount(inv.amount) for inv in invoices), 0.0)
    count = len(invoices)
    average = total / count if count > 0 else 0.0
    return ReportSummary(period=period, count=count, total=total, average=average)


def dashboard_stats(store: Store, now: Optional[datetime] = None, prefix: str = "$") -> Dict[str, object]:
    now = now or datetime.now()
    return {
        "totalPatients": len(store.patients),
        "activeOrders": len(active_orders(store)),
        "todayAppointments": len(today_appointments(store, now)),
        "monthlyRevenue": monthly_revenue(store, now, prefix),
    }
