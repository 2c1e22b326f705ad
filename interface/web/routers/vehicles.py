"""车辆路由 /api/veiculos"""
from fastapi import APIRouter, Depends

from database.manager import DatabaseManager
from interface.web.deps import get_db, require_user
from interface.web.schemas import VehicleIn

router = APIRouter(prefix="/api/veiculos", tags=["veiculos"],
                   dependencies=[Depends(require_user)])


@router.get("")
def list_vehicles(db: DatabaseManager = Depends(get_db)):
    return db.vehicles.list_all()


@router.get("/{vehicle_id}")
def get_vehicle(vehicle_id: int, db: DatabaseManager = Depends(get_db)):
    return db.vehicles.get(vehicle_id)


@router.post("", status_code=201)
def create_vehicle(body: VehicleIn, db: DatabaseManager = Depends(get_db)):
    return db.vehicles.create_vehicle(body.to_data())


@router.put("/{vehicle_id}")
def update_vehicle(vehicle_id: int, body: VehicleIn,
                   db: DatabaseManager = Depends(get_db)):
    return db.vehicles.update_vehicle(vehicle_id, body.to_data())


@router.delete("/{vehicle_id}")
def delete_vehicle(vehicle_id: int, db: DatabaseManager = Depends(get_db)):
    db.vehicles.delete_vehicle(vehicle_id)
    return {"message": "车辆已删除"}
