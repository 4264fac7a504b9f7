import logging
import re
from datetime import datetime
from typing import Optional, Tuple
from urllib.parse import quote

from bson import ObjectId

from database import Store
from schemas import (
    Appointment,
    AppointmentIn,
    Invoice,
    InvoiceIn,
    Message,
    Order,
    OrderIn,
    Patient,
    PatientIn,
    WhatsAppIn,
)

logger = logging.getLogger(__name__)

WHATSAPP_BASE_URL = "https://wa.me/"
# characters encodeURIComponent leaves unescaped
URI_SAFE = "!~*'()"

MESSAGE_TEMPLATES = {
    "followup": (
        "Hello [Name], your lens order is being prepared. "
        "We will let you know as soon as it is ready. Thank you for your patience."
    ),
    "ready": (
        "Hello [Name]! Your lens order is ready for pickup. "
        "You can come by any time during our opening hours."
    ),
    "appointment": "Hello [Name], this is a reminder of your appointment on [date] at [time]. We look forward to seeing you.",
}


class ActionError(Exception):
    """An action could not run because required data is missing."""


# -----------------------------
# Utilities
# -----------------------------

def new_id() -> str:
    return str(ObjectId())


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def generate_invoice_number(store: Store, now: Optional[datetime] = None) -> str:
    # Running count over all invoices: not reset per year, not max-seen.
    year = _now(now).year
    seq = len(store.invoices) + 1
    return f"{year}-{seq:04d}"


def whatsapp_url(phone: str, text: str, base_url: str = WHATSAPP_BASE_URL) -> str:
    digits = re.sub(r"\D", "", phone)
    return f"{base_url}{digits}?text={quote(text, safe=URI_SAFE)}"


def message_template(name: str) -> Optional[str]:
    return MESSAGE_TEMPLATES.get(name)


# -----------------------------
# Patients
# -----------------------------

def create_patient(store: Store, payload: PatientIn, now: Optional[datetime] = None) -> Patient:
    patient = Patient(id=new_id(), created_at=_now(now), **payload.model_dump())
    with store.lock:
        store.patients.append(patient)
        store.save()
    logger.info("Patient %s registered", patient.id)
    return patient


def update_patient(store: Store, patient_id: str, payload: PatientIn) -> Optional[Patient]:
    with store.lock:
        patient = store.find("patients", patient_id)
        if not patient:
            return None
        for k, v in payload.model_dump().items():
            setattr(patient, k, v)
        store.save()
    logger.info("Patient %s updated", patient_id)
    return patient


def delete_patient(store: Store, patient_id: str, confirmed: bool = False) -> bool:
    return _delete(store, "patients", patient_id, confirmed)


# -----------------------------
# Orders
# -----------------------------

def create_order(store: Store, payload: OrderIn, now: Optional[datetime] = None) -> Order:
    # NaN passes this check and is stored as-is
    if payload.price < 0:
        raise ActionError("Price cannot be negative")
    order = Order(id=new_id(), status="active", created_at=_now(now), **payload.model_dump())
    with store.lock:
        store.orders.append(order)
        store.save()
    logger.info("Order %s registered for patient %s", order.id, order.patient_id)
    return order


def toggle_order_status(store: Store, order_id: str) -> Optional[Order]:
    with store.lock:
        order = store.find("orders", order_id)
        if not order:
            return None
        order.status = "completed" if order.status == "active" else "active"
        store.save()
    logger.info("Order %s is now %s", order_id, order.status)
    return order


def delete_order(store: Store, order_id: str, confirmed: bool = False) -> bool:
    return _delete(store, "orders", order_id, confirmed)


# -----------------------------
# Invoices
# -----------------------------

def create_invoice(store: Store, payload: InvoiceIn, now: Optional[datetime] = None) -> Invoice:
    if payload.amount < 0:
        raise ActionError("Amount cannot be negative")
    now = _now(now)
    with store.lock:
        # numbering reads the count, so it shares the lock with the append
        invoice = Invoice(
            id=new_id(),
            number=generate_invoice_number(store, now),
            date=now.date().isoformat(),
            status="paid",
            **payload.model_dump(),
        )
        store.invoices.append(invoice)
        store.save()
    logger.info("Invoice %s issued", invoice.number)
    return invoice


def delete_invoice(store: Store, invoice_id: str, confirmed: bool = False) -> bool:
    return _delete(store, "invoices", invoice_id, confirmed)


# -----------------------------
# Appointments
# -----------------------------

def create_appointment(store: Store, payload: AppointmentIn, now: Optional[datetime] = None) -> Appointment:
    appointment = Appointment(id=new_id(), created_at=_now(now), **payload.model_dump())
    with store.lock:
        store.appointments.append(appointment)
        store.save()
    logger.info("Appointment %s booked for %s %s", appointment.id, appointment.date, appointment.time)
    return appointment


def delete_appointment(store: Store, appointment_id: str, confirmed: bool = False) -> bool:
    return _delete(store, "appointments", appointment_id, confirmed)


def appointment_reminder(store: Store, appointment_id: str, base_url: str = WHATSAPP_BASE_URL) -> str:
    """Build the WhatsApp link reminding a patient of an appointment.

    Nothing is recorded; the link is handed to the browser to send.
    """
    appointment = store.find("appointments", appointment_id)
    if not appointment:
        raise ActionError("Appointment not found")
    patient = store.find("patients", appointment.patient_id)
    if not patient or not patient.phone:
        raise ActionError("Could not send the reminder. Check the patient's phone number.")
    text = (
        f"Hello {patient.name}, this is a reminder of your appointment on "
        f"{appointment.date} at {appointment.time}. Type: {appointment.type}. "
        "We look forward to seeing you."
    )
    return whatsapp_url(patient.phone, text, base_url)


# -----------------------------
# Messages
# -----------------------------

def send_whatsapp(
    store: Store,
    payload: WhatsAppIn,
    now: Optional[datetime] = None,
    base_url: str = WHATSAPP_BASE_URL,
) -> Tuple[Message, str]:
    patient = store.find("patients", payload.patient_id)
    if not patient or not patient.phone:
        raise ActionError("Could not send the message. Check the patient's phone number.")

    # Recorded as sent right away; delivery happens when the user opens the link.
    message = Message(
        id=new_id(),
        patient_id=patient.id,
        patient_name=patient.name,
        phone=patient.phone,
        message=payload.message,
        type=payload.type,
        sent_at=_now(now),
        status="sent",
    )
    with store.lock:
        store.messages.append(message)
        store.save()
    logger.info("WhatsApp message %s recorded for patient %s", message.id, patient.id)
    return message, whatsapp_url(patient.phone, payload.message, base_url)


# -----------------------------
# Helpers
# -----------------------------

def _delete(store: Store, collection: str, record_id: str, confirmed: bool) -> bool:
    if not confirmed:
        return False
    with store.lock:
        if not store.remove(collection, record_id):
            return False
        store.save()
    logger.info("Deleted %s record %s", collection, record_id)
    return True
