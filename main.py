import logging
from typing import List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

import handlers
import render
import views
from config import Settings, get_settings, setup_logging
from database import Store, build_storage
from notifier import Notifier
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


# -----------------------------
# Response Schemas (API layer)
# -----------------------------
class DeleteOut(BaseModel):
    deleted: bool


class LinkOut(BaseModel):
    url: str


class WhatsAppOut(BaseModel):
    url: str
    message: Message


class TemplateOut(BaseModel):
    name: str
    text: str


class StatsOut(BaseModel):
    totalPatients: int
    activeOrders: int
    todayAppointments: int
    monthlyRevenue: str


class ReportOut(BaseModel):
    period: str
    count: int
    total: str
    average: str


class NotificationOut(BaseModel):
    id: str
    message: str
    level: str


# -----------------------------
# Helpers
# -----------------------------

def _store(request: Request) -> Store:
    return request.app.state.store


def _notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _require_confirmation(confirm: bool):
    if not confirm:
        raise HTTPException(status_code=400, detail="Confirmation required")


def _action_error(request: Request, e: handlers.ActionError) -> HTTPException:
    _notifier(request).notify(str(e), "error")
    return HTTPException(status_code=400, detail=str(e))


router = APIRouter()


@router.get("/health")
def health(request: Request):
    return {"status": "ok", "clinic": _settings(request).CLINIC_NAME}


# -----------------------------
# Sections & summaries
# -----------------------------
@router.get("/sections/{name}", response_class=HTMLResponse)
def section(name: str, request: Request):
    if name not in render.SECTIONS:
        raise HTTPException(status_code=404, detail="Section not found")
    return render.render_section(_store(request), name, prefix=_settings(request).CURRENCY_PREFIX)


@router.get("/patients/options", response_class=HTMLResponse)
def patient_options(request: Request):
    return render.patient_options(_store(request))


@router.get("/stats", response_model=StatsOut)
def stats(request: Request):
    return views.dashboard_stats(_store(request), prefix=_settings(request).CURRENCY_PREFIX)


@router.get("/reports/{period}", response_model=ReportOut)
def report(period: str, request: Request):
    if period not in views.REPORT_PERIODS:
        raise HTTPException(status_code=404, detail="Unknown report period")
    prefix = _settings(request).CURRENCY_PREFIX
    summary = views.report(_store(request), period)
    return ReportOut(
        period=summary.period,
        count=summary.count,
        total=views.format_money(summary.total, prefix),
        average=views.format_money(summary.average, prefix),
    )


@router.get("/reports/{period}/summary", response_class=HTMLResponse)
def report_summary(period: str, request: Request):
    if period not in views.REPORT_PERIODS:
        raise HTTPException(status_code=404, detail="Unknown report period")
    summary = views.report(_store(request), period)
    return render.report_summary(summary, _settings(request).CURRENCY_PREFIX)


# -----------------------------
# Patients
# -----------------------------
@router.get("/patients", response_model=List[Patient])
def list_patients(request: Request):
    return _store(request).patients


@router.post("/patients", response_model=Patient)
def create_patient(payload: PatientIn, request: Request):
    patient = handlers.create_patient(_store(request), payload)
    _notifier(request).notify("Patient registered successfully", "success")
    return patient


@router.put("/patients/{patient_id}", response_model=Patient)
def update_patient(patient_id: str, payload: PatientIn, request: Request):
    patient = handlers.update_patient(_store(request), patient_id, payload)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    _notifier(request).notify("Patient updated", "success")
    return patient


@router.delete("/patients/{patient_id}", response_model=DeleteOut)
def delete_patient(patient_id: str, request: Request, confirm: bool = False):
    _require_confirmation(confirm)
    deleted = handlers.delete_patient(_store(request), patient_id, confirmed=True)
    if deleted:
        _notifier(request).notify("Patient deleted", "success")
    return DeleteOut(deleted=deleted)


# -----------------------------
# Orders
# -----------------------------
@router.get("/orders", response_model=List[Order])
def list_orders(request: Request):
    return _store(request).orders


@router.post("/orders", response_model=Order)
def create_order(payload: OrderIn, request: Request):
    try:
        order = handlers.create_order(_store(request), payload)
    except handlers.ActionError as e:
        raise _action_error(request, e)
    _notifier(request).notify("Order registered successfully", "success")
    return order


@router.post("/orders/{order_id}/toggle", response_model=Optional[Order])
def toggle_order(order_id: str, request: Request):
    order = handlers.toggle_order_status(_store(request), order_id)
    if order:
        _notifier(request).notify("Order status updated", "success")
    return order


@router.delete("/orders/{order_id}", response_model=DeleteOut)
def delete_order(order_id: str, request: Request, confirm: bool = False):
    _require_confirmation(confirm)
    deleted = handlers.delete_order(_store(request), order_id, confirmed=True)
    if deleted:
        _notifier(request).notify("Order deleted", "success")
    return DeleteOut(deleted=deleted)


# -----------------------------
# Invoices
# -----------------------------
@router.get("/invoices", response_model=List[Invoice])
def list_invoices(request: Request):
    return _store(request).invoices


@router.post("/invoices", response_model=Invoice)
def create_invoice(payload: InvoiceIn, request: Request):
    try:
        invoice = handlers.create_invoice(_store(request), payload)
    except handlers.ActionError as e:
        raise _action_error(request, e)
    _notifier(request).notify("Invoice generated successfully", "success")
    return invoice


@router.get("/invoices/{invoice_id}/print", response_class=HTMLResponse)
def print_invoice(invoice_id: str, request: Request):
    settings = _settings(request)
    doc = render.invoice_document(_store(request), invoice_id, settings.CLINIC_NAME, settings.CURRENCY_PREFIX)
    if doc is None:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return doc


@router.delete("/invoices/{invoice_id}", response_model=DeleteOut)
def delete_invoice(invoice_id: str, request: Request, confirm: bool = False):
    _require_confirmation(confirm)
    deleted = handlers.delete_invoice(_store(request), invoice_id, confirmed=True)
    if deleted:
        _notifier(request).notify("Invoice deleted", "success")
    return DeleteOut(deleted=deleted)


# -----------------------------
# Appointments
# -----------------------------
@router.get("/appointments", response_model=List[Appointment])
def list_appointments(request: Request):
    return _store(request).appointments


@router.post("/appointments", response_model=Appointment)
def create_appointment(payload: AppointmentIn, request: Request):
    appointment = handlers.create_appointment(_store(request), payload)
    _notifier(request).notify("Appointment booked successfully", "success")
    return appointment


@router.post("/appointments/{appointment_id}/reminder", response_model=LinkOut)
def appointment_reminder(appointment_id: str, request: Request):
    try:
        url = handlers.appointment_reminder(_store(request), appointment_id, _settings(request).WHATSAPP_BASE_URL)
    except handlers.ActionError as e:
        raise _action_error(request, e)
    _notifier(request).notify("Reminder sent via WhatsApp", "success")
    return LinkOut(url=url)


@router.delete("/appointments/{appointment_id}", response_model=DeleteOut)
def delete_appointment(appointment_id: str, request: Request, confirm: bool = False):
    _require_confirmation(confirm)
    deleted = handlers.delete_appointment(_store(request), appointment_id, confirmed=True)
    if deleted:
        _notifier(request).notify("Appointment deleted", "success")
    return DeleteOut(deleted=deleted)


# -----------------------------
# Messages
# -----------------------------
@router.get("/messages", response_model=List[Message])
def list_messages(request: Request):
    return views.message_history(_store(request))


@router.post("/messages/whatsapp", response_model=WhatsAppOut)
def send_whatsapp(payload: WhatsAppIn, request: Request):
    try:
        message, url = handlers.send_whatsapp(
            _store(request), payload, base_url=_settings(request).WHATSAPP_BASE_URL
        )
    except handlers.ActionError as e:
        raise _action_error(request, e)
    _notifier(request).notify("Message sent successfully", "success")
    return WhatsAppOut(url=url, message=message)


@router.get("/messages/templates/{name}", response_model=TemplateOut)
def message_template(name: str):
    text = handlers.message_template(name)
    if text is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return TemplateOut(name=name, text=text)


@router.get("/notifications", response_model=List[NotificationOut])
def notifications(request: Request):
    return [NotificationOut(id=n.id, message=n.message, level=n.level) for n in _notifier(request).active()]


# -----------------------------
# FastAPI App
# -----------------------------

def create_app(
    settings: Optional[Settings] = None,
    storage=None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    settings = settings or get_settings()
    store = Store(storage if storage is not None else build_storage(settings)).load()
    logger.info(
        "Loaded %d patients, %d orders, %d invoices, %d appointments, %d messages",
        len(store.patients), len(store.orders), len(store.invoices),
        len(store.appointments), len(store.messages),
    )

    application = FastAPI(title=f"{settings.CLINIC_NAME} - Front Desk")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.state.settings = settings
    application.state.store = store
    application.state.notifier = notifier or Notifier(settings.NOTIFICATION_DELAY_MS)
    application.include_router(router)
    return application


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)
