"""发票路由 /api/faturas"""
from fastapi import APIRouter, Depends

from business.billing import BillingService
from database.manager import DatabaseManager
from interface.web.deps import get_billing, get_db, require_user
from interface.web.schemas import InvoiceIn

router = APIRouter(prefix="/api/faturas", tags=["faturas"],
                   dependencies=[Depends(require_user)])


@router.get("")
def list_invoices(db: DatabaseManager = Depends(get_db)):
    return db.invoices.list_all()


@router.get("/em-aberto")
def list_open_invoices(db: DatabaseManager = Depends(get_db)):
    """未付款的发票"""
    return db.invoices.list_open()


@router.get("/{invoice_id}")
def get_invoice(invoice_id: int, db: DatabaseManager = Depends(get_db)):
    return db.invoices.get(invoice_id)


@router.post("", status_code=201)
def create_invoice(body: InvoiceIn, db: DatabaseManager = Depends(get_db)):
    return db.invoices.create_invoice(body.to_data())


@router.put("/{invoice_id}")
def update_invoice(invoice_id: int, body: InvoiceIn,
                   billing: BillingService = Depends(get_billing)):
    return billing.update_invoice(invoice_id, body.to_data())


@router.delete("/{invoice_id}")
def delete_invoice(invoice_id: int, db: DatabaseManager = Depends(get_db)):
    db.invoices.delete_invoice(invoice_id)
    return {"message": "发票已删除"}
