"""顾客路由 /api/clientes"""
from fastapi import APIRouter, Depends

from database.manager import DatabaseManager
from interface.web.deps import get_db, require_user
from interface.web.schemas import CustomerIn

router = APIRouter(prefix="/api/clientes", tags=["clientes"],
                   dependencies=[Depends(require_user)])


@router.get("")
def list_customers(db: DatabaseManager = Depends(get_db)):
    return db.customers.list_all()


@router.get("/{customer_id}/veiculos")
def list_customer_vehicles(customer_id: int, db: DatabaseManager = Depends(get_db)):
    """顾客名下的车辆"""
    return db.customers.list_vehicles(customer_id)


@router.get("/{customer_id}")
def get_customer(customer_id: int, db: DatabaseManager = Depends(get_db)):
    return db.customers.get(customer_id)


@router.post("", status_code=201)
def create_customer(body: CustomerIn, db: DatabaseManager = Depends(get_db)):
    return db.customers.create_customer(body.to_data())


@router.put("/{customer_id}")
def update_customer(customer_id: int, body: CustomerIn,
                    db: DatabaseManager = Depends(get_db)):
    return db.customers.update_customer(customer_id, body.to_data())


@router.delete("/{customer_id}")
def delete_customer(customer_id: int, db: DatabaseManager = Depends(get_db)):
    db.customers.delete_customer(customer_id)
    return {"message": "顾客已删除"}
