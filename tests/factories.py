"""Helpers that build the customer → vehicle → service order → invoice chain."""
from datetime import date, time


def make_customer(db, suffix="1"):
    """Create a customer and return its dict."""
    return db.customers.create_customer({
        "name": f"Cliente {suffix}",
        "phone": "(11) 90000-0000",
        "email": f"cliente{suffix}@email.com",
    })


def make_vehicle(db, customer_id, suffix="1"):
    """Create a vehicle for a customer and return its dict."""
    return db.vehicles.create_vehicle({
        "customer_id": customer_id,
        "model": "Fiat Uno",
        "year": 2015,
        "plate": f"ABC-{suffix}",
        "chassis_number": f"9BWZZZ377VT00{suffix}",
    })


def make_part(db, name="Filtro de Óleo", quantity=10):
    """Create an inventory part and return its dict."""
    return db.inventory.create_part({
        "name": name,
        "quantity": quantity,
        "cost_price": 10,
        "sale_price": 20,
        "minimum_level": 3,
    })


def make_order(db, vehicle_id, **extra):
    """Create a service order and return its dict."""
    data = {
        "vehicle_id": vehicle_id,
        "scheduled_date": date(2024, 1, 28),
        "scheduled_time": time(9, 30),
        "service_type": "Troca de óleo",
    }
    data.update(extra)
    return db.service_orders.create_order(data)


def make_invoice(db, total_due=100, suffix="1"):
    """Build the whole chain and return the new invoice dict."""
    customer = make_customer(db, suffix)
    vehicle = make_vehicle(db, customer["id"], suffix)
    order = make_order(db, vehicle["id"])
    return db.invoices.create_invoice({
        "service_order_id": order["id"],
        "total_due": total_due,
    })
