"""Entity repository tests.

Tests for all entity repositories:
- CustomerRepository: CRUD, duplicate email, delete blocked by vehicles, list_vehicles
- VehicleRepository: CRUD, missing customer, duplicate plate
- InventoryRepository: CRUD, low stock, adjust_quantity
- EmployeeRepository: get_or_create, get_active_staff
"""

import pytest

from database.errors import NotFoundError, ValidationError
from tests.factories import make_customer, make_order, make_part, make_vehicle


# ============================================================
# CustomerRepository Tests
# ============================================================
class TestCustomerRepository:
    """Tests for CustomerRepository."""

    def test_create_and_get(self, temp_db):
        created = temp_db.customers.create_customer({
            "name": "João Silva", "email": "joao@email.com", "phone": "(11) 99999-9999",
        })
        assert created["id"] > 0

        fetched = temp_db.customers.get(created["id"])
        assert fetched == created

    def test_create_requires_name(self, temp_db):
        with pytest.raises(ValidationError, match="name"):
            temp_db.customers.create_customer({"email": "x@email.com"})

    def test_duplicate_email_rejected(self, temp_db):
        make_customer(temp_db, "1")
        with pytest.raises(ValidationError, match="邮箱"):
            temp_db.customers.create_customer({"name": "Outro", "email": "cliente1@email.com"})

    def test_list_all_ordered_by_name(self, temp_db):
        temp_db.customers.create_customer({"name": "Zeca"})
        temp_db.customers.create_customer({"name": "Ana"})
        names = [c["name"] for c in temp_db.customers.list_all()]
        assert names == ["Ana", "Zeca"]

    def test_get_nonexistent(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.customers.get(99999)

    def test_update_only_given_fields(self, sample_customer, temp_db):
        updated = temp_db.customers.update_customer(
            sample_customer["id"], {"phone": "(21) 12345-6789"}
        )
        assert updated["phone"] == "(21) 12345-6789"
        assert updated["name"] == sample_customer["name"]

    def test_update_nonexistent(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.customers.update_customer(99999, {"name": "X"})

    def test_delete_customer(self, sample_customer, temp_db):
        temp_db.customers.delete_customer(sample_customer["id"])
        with pytest.raises(NotFoundError):
            temp_db.customers.get(sample_customer["id"])

    def test_delete_nonexistent(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.customers.delete_customer(99999)

    def test_delete_blocked_by_vehicle(self, sample_vehicle, temp_db):
        """A customer who still owns vehicles cannot be deleted; the row remains."""
        customer_id = sample_vehicle["customer_id"]
        with pytest.raises(ValidationError, match="车辆"):
            temp_db.customers.delete_customer(customer_id)
        assert temp_db.customers.get(customer_id)["id"] == customer_id

    def test_list_vehicles(self, sample_vehicle, temp_db):
        vehicles = temp_db.customers.list_vehicles(sample_vehicle["customer_id"])
        assert [v["id"] for v in vehicles] == [sample_vehicle["id"]]

    def test_list_vehicles_unknown_customer_is_empty(self, temp_db):
        assert temp_db.customers.list_vehicles(99999) == []


# ============================================================
# VehicleRepository Tests
# ============================================================
class TestVehicleRepository:
    """Tests for VehicleRepository."""

    def test_create_includes_customer_name(self, sample_customer, temp_db):
        vehicle = make_vehicle(temp_db, sample_customer["id"])
        assert vehicle["customer_name"] == sample_customer["name"]
        assert vehicle["plate"] == "ABC-1"

    def test_create_requires_fields(self, sample_customer, temp_db):
        with pytest.raises(ValidationError, match="plate"):
            temp_db.vehicles.create_vehicle({
                "customer_id": sample_customer["id"], "model": "Gol",
                "chassis_number": "XYZ",
            })

    def test_create_unknown_customer(self, temp_db):
        with pytest.raises(ValidationError, match="顾客不存在"):
            make_vehicle(temp_db, 99999)
        assert temp_db.vehicles.list_all() == []

    def test_duplicate_plate_rejected(self, sample_vehicle, temp_db):
        with pytest.raises(ValidationError, match="车牌"):
            temp_db.vehicles.create_vehicle({
                "customer_id": sample_vehicle["customer_id"], "model": "Gol",
                "plate": sample_vehicle["plate"], "chassis_number": "OTHER-CHASSIS",
            })

    def test_update_to_unknown_customer(self, sample_vehicle, temp_db):
        with pytest.raises(ValidationError, match="顾客不存在"):
            temp_db.vehicles.update_vehicle(sample_vehicle["id"], {"customer_id": 99999})

    def test_update_vehicle(self, sample_vehicle, temp_db):
        updated = temp_db.vehicles.update_vehicle(sample_vehicle["id"], {"year": 2020})
        assert updated["year"] == 2020
        assert updated["model"] == sample_vehicle["model"]

    def test_update_vehicle_model(self, sample_vehicle, temp_db):
        updated = temp_db.vehicles.update_vehicle(sample_vehicle["id"], {"model": "Chevrolet Onix"})
        assert updated["model"] == "Chevrolet Onix"
        assert temp_db.vehicles.get(sample_vehicle["id"])["model"] == "Chevrolet Onix"

    def test_delete_blocked_by_service_order(self, sample_order, temp_db):
        with pytest.raises(ValidationError, match="服务单"):
            temp_db.vehicles.delete_vehicle(sample_order["vehicle_id"])

    def test_delete_vehicle(self, sample_vehicle, temp_db):
        temp_db.vehicles.delete_vehicle(sample_vehicle["id"])
        with pytest.raises(NotFoundError):
            temp_db.vehicles.get(sample_vehicle["id"])


# ============================================================
# InventoryRepository Tests
# ============================================================
class TestInventoryRepository:
    """Tests for InventoryRepository."""

    def test_create_part(self, temp_db):
        part = make_part(temp_db)
        assert part["quantity"] == 10
        assert part["sale_price"] == 20.0

    def test_create_requires_prices(self, temp_db):
        with pytest.raises(ValidationError, match="cost_price"):
            temp_db.inventory.create_part({"name": "Vela", "sale_price": 10})

    def test_duplicate_name_rejected(self, temp_db):
        make_part(temp_db, "Vela")
        with pytest.raises(ValidationError):
            make_part(temp_db, "Vela")

    def test_negative_quantity_rejected_on_update(self, temp_db):
        part = make_part(temp_db)
        with pytest.raises(ValidationError, match="库存数量不能为负"):
            temp_db.inventory.update_part(part["id"], {"quantity": -1})
        assert temp_db.inventory.get(part["id"])["quantity"] == 10

    def test_low_stock(self, temp_db):
        make_part(temp_db, "Correia", quantity=2)
        make_part(temp_db, "Vela", quantity=3)
        make_part(temp_db, "Óleo", quantity=50)
        names = [p["name"] for p in temp_db.inventory.get_low_stock()]
        assert names == ["Correia", "Vela"]

    def test_adjust_add(self, temp_db):
        part = make_part(temp_db, quantity=5)
        updated = temp_db.inventory.adjust_quantity(part["id"], 3, "adicionar")
        assert updated["quantity"] == 8

    def test_adjust_remove(self, temp_db):
        part = make_part(temp_db, quantity=5)
        updated = temp_db.inventory.adjust_quantity(part["id"], 5, "remover")
        assert updated["quantity"] == 0

    def test_adjust_below_zero_rejected(self, temp_db):
        """Removing more than is in stock fails and leaves the quantity unchanged."""
        part = make_part(temp_db, quantity=5)
        with pytest.raises(ValidationError, match="库存数量不足"):
            temp_db.inventory.adjust_quantity(part["id"], 6, "remover")
        assert temp_db.inventory.get(part["id"])["quantity"] == 5

    @pytest.mark.parametrize("quantity, operation", [
        (None, "adicionar"),
        (2, None),
        (-1, "adicionar"),
        (2, "dobrar"),
    ])
    def test_adjust_invalid_input(self, temp_db, quantity, operation):
        part = make_part(temp_db)
        with pytest.raises(ValidationError):
            temp_db.inventory.adjust_quantity(part["id"], quantity, operation)

    def test_adjust_unknown_part(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.inventory.adjust_quantity(99999, 1, "adicionar")

    def test_delete_blocked_when_used_by_order(self, sample_vehicle, temp_db):
        part = make_part(temp_db)
        make_order(temp_db, sample_vehicle["id"],
                   parts=[{"part_id": part["id"], "quantity": 1}])
        with pytest.raises(ValidationError, match="服务单"):
            temp_db.inventory.delete_part(part["id"])


# ============================================================
# EmployeeRepository Tests
# ============================================================
class TestEmployeeRepository:
    """Tests for EmployeeRepository."""

    def test_get_or_create_existing_by_name(self, temp_db):
        emp1 = temp_db.employees.get_or_create("Carlos", role="Mecânico")
        emp2 = temp_db.employees.get_or_create("Carlos")
        assert emp1.id == emp2.id
        assert emp2.role == "Mecânico"

    def test_get_or_create_with_session(self, temp_db):
        with temp_db.get_session() as session:
            emp = temp_db.employees.get_or_create("SessStaff", session=session)
            assert emp.id is not None
            session.commit()
        assert [e.name for e in temp_db.employees.get_active_staff()] == ["SessStaff"]
