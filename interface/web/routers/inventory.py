"""零件库存路由 /api/estoque"""
from fastapi import APIRouter, Depends

from database.manager import DatabaseManager
from interface.web.deps import get_db, require_user
from interface.web.schemas import PartIn, StockAdjustmentIn

router = APIRouter(prefix="/api/estoque", tags=["estoque"],
                   dependencies=[Depends(require_user)])


@router.get("")
def list_parts(db: DatabaseManager = Depends(get_db)):
    return db.inventory.list_all()


@router.get("/baixo-estoque")
def list_low_stock(db: DatabaseManager = Depends(get_db)):
    """库存不高于最低库存的零件"""
    return db.inventory.get_low_stock()


@router.get("/{part_id}")
def get_part(part_id: int, db: DatabaseManager = Depends(get_db)):
    return db.inventory.get(part_id)


@router.post("", status_code=201)
def create_part(body: PartIn, db: DatabaseManager = Depends(get_db)):
    return db.inventory.create_part(body.to_data())


@router.put("/{part_id}/quantidade")
def adjust_quantity(part_id: int, body: StockAdjustmentIn,
                    db: DatabaseManager = Depends(get_db)):
    """入库（adicionar）或出库（remover）"""
    return db.inventory.adjust_quantity(part_id, body.quantidade, body.operacao)


@router.put("/{part_id}")
def update_part(part_id: int, body: PartIn, db: DatabaseManager = Depends(get_db)):
    return db.inventory.update_part(part_id, body.to_data())


@router.delete("/{part_id}")
def delete_part(part_id: int, db: DatabaseManager = Depends(get_db)):
    db.inventory.delete_part(part_id)
    return {"message": "零件已删除"}
