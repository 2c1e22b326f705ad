"""付款路由 /api/pagamentos

写操作经由 BillingService，完成后重算发票付款状态。
"""
from fastapi import APIRouter, Depends

from business.billing import BillingService
from database.manager import DatabaseManager
from interface.web.deps import get_billing, get_db, require_user
from interface.web.schemas import PaymentIn

router = APIRouter(prefix="/api/pagamentos", tags=["pagamentos"],
                   dependencies=[Depends(require_user)])


@router.get("")
def list_payments(db: DatabaseManager = Depends(get_db)):
    return db.payments.list_all()


@router.get("/fatura/{invoice_id}")
def list_invoice_payments(invoice_id: int, db: DatabaseManager = Depends(get_db)):
    return db.payments.list_by_invoice(invoice_id)


@router.get("/{payment_id}")
def get_payment(payment_id: int, db: DatabaseManager = Depends(get_db)):
    return db.payments.get(payment_id)


@router.post("", status_code=201)
def create_payment(body: PaymentIn, billing: BillingService = Depends(get_billing)):
    return billing.create_payment(body.to_data())


@router.put("/{payment_id}")
def update_payment(payment_id: int, body: PaymentIn,
                   billing: BillingService = Depends(get_billing)):
    return billing.update_payment(payment_id, body.to_data())


@router.delete("/{payment_id}")
def delete_payment(payment_id: int, billing: BillingService = Depends(get_billing)):
    billing.delete_payment(payment_id)
    return {"message": "付款记录已删除"}
