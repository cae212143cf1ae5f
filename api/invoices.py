"""Invoice routes: CRUD, audit history, PDF download and email sending."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from api.base import success_response
from api.deps import get_owner_id, get_request_id
from core.models import InvoiceCreate, InvoiceUpdate, SendEmailRequest


def create_invoices_router(services: dict) -> APIRouter:
    router = APIRouter(tags=["invoices"])

    invoice_svc = services["invoice"]
    email_svc = services["invoice_email"]

    @router.get("/invoices")
    async def list_invoices(request: Request, owner_id: UUID = Depends(get_owner_id)):
        invoices = invoice_svc.list_for_owner(owner_id)
        return success_response(
            [i.model_dump(mode="json") for i in invoices], get_request_id(request)
        ).model_dump(mode="json")

    @router.post("/invoices", status_code=201)
    async def create_invoice(request: Request, body: InvoiceCreate, owner_id: UUID = Depends(get_owner_id)):
        invoice = invoice_svc.create(owner_id, body)
        return success_response(invoice.model_dump(mode="json"), get_request_id(request)).model_dump(mode="json")

    @router.get("/invoices/{invoice_id}")
    async def get_invoice(request: Request, invoice_id: UUID, owner_id: UUID = Depends(get_owner_id)):
        invoice = invoice_svc.get(owner_id, invoice_id)
        return success_response(invoice.model_dump(mode="json"), get_request_id(request)).model_dump(mode="json")

    @router.put("/invoices/{invoice_id}")
    async def update_invoice(
        request: Request,
        invoice_id: UUID,
        body: InvoiceUpdate,
        owner_id: UUID = Depends(get_owner_id),
    ):
        invoice = invoice_svc.update(owner_id, invoice_id, body)
        return success_response(invoice.model_dump(mode="json"), get_request_id(request)).model_dump(mode="json")

    @router.delete("/invoices/{invoice_id}")
    async def delete_invoice(request: Request, invoice_id: UUID, owner_id: UUID = Depends(get_owner_id)):
        invoice_svc.delete(owner_id, invoice_id)
        return success_response(
            {"message": "Invoice deleted successfully"}, get_request_id(request)
        ).model_dump(mode="json")

    @router.get("/invoices/{invoice_id}/history")
    async def invoice_history(request: Request, invoice_id: UUID, owner_id: UUID = Depends(get_owner_id)):
        entries = invoice_svc.history(owner_id, invoice_id)
        return success_response(entries, get_request_id(request)).model_dump(mode="json")

    @router.get("/invoices/{invoice_id}/pdf")
    async def download_pdf(invoice_id: UUID, owner_id: UUID = Depends(get_owner_id)):
        invoice, pdf = email_svc.render_pdf(owner_id, invoice_id)
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="invoice-{invoice.invoice_number}.pdf"'},
        )

    @router.post("/invoices/{invoice_id}/send-email")
    async def send_email(
        request: Request,
        invoice_id: UUID,
        body: SendEmailRequest | None = None,
        owner_id: UUID = Depends(get_owner_id),
    ):
        body = body or SendEmailRequest()
        invoice = email_svc.send(owner_id, invoice_id, body.email_type, body.custom_message)
        latest = max(invoice.email_logs, key=lambda log: log.sent_at)
        label = "Reminder" if body.email_type.value == "reminder" else "Invoice"
        return success_response({
            "message": f"{label} sent successfully",
            "message_id": latest.message_id,
            "invoice": invoice.model_dump(mode="json"),
        }, get_request_id(request)).model_dump(mode="json")

    @router.get("/invoices/{invoice_id}/send-email")
    async def email_history(request: Request, invoice_id: UUID, owner_id: UUID = Depends(get_owner_id)):
        summary = invoice_svc.email_summary(owner_id, invoice_id)
        return success_response(summary.model_dump(mode="json"), get_request_id(request)).model_dump(mode="json")

    return router
