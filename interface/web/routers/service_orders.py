"""服务单路由 /api/servicos"""
from fastapi import APIRouter, Depends

from database.manager import DatabaseManager
from interface.web.deps import get_db, require_user
from interface.web.schemas import OrderPartIn, ServiceOrderIn

router = APIRouter(prefix="/api/servicos", tags=["servicos"],
                   dependencies=[Depends(require_user)])


@router.get("")
def list_orders(db: DatabaseManager = Depends(get_db)):
    return db.service_orders.list_all()


@router.get("/{order_id}")
def get_order(order_id: int, db: DatabaseManager = Depends(get_db)):
    """服务单详情（含零件明细）"""
    return db.service_orders.get(order_id)


@router.post("", status_code=201)
def create_order(body: ServiceOrderIn, db: DatabaseManager = Depends(get_db)):
    return db.service_orders.create_order(body.to_data())


@router.put("/{order_id}")
def update_order(order_id: int, body: ServiceOrderIn,
                 db: DatabaseManager = Depends(get_db)):
    data = body.to_data()
    data.pop("parts", None)
    return db.service_orders.update_order(order_id, data)


@router.delete("/{order_id}")
def delete_order(order_id: int, db: DatabaseManager = Depends(get_db)):
    db.service_orders.delete_order(order_id)
    return {"message": "服务单已删除"}


@router.post("/{order_id}/pecas")
def attach_part(order_id: int, body: OrderPartIn,
                db: DatabaseManager = Depends(get_db)):
    parts = db.service_orders.attach_part(order_id, body.part_id, body.quantity)
    return {"message": "零件已添加到服务单", "parts": parts}


@router.delete("/{order_id}/pecas/{part_id}")
def detach_part(order_id: int, part_id: int, db: DatabaseManager = Depends(get_db)):
    db.service_orders.detach_part(order_id, part_id)
    return {"message": "零件已从服务单移除"}
