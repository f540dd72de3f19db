"""
Erreurs métier levées par les services.

Les endpoints les traduisent en HTTPException (status_code + detail).
"""

from __future__ import annotations


class ProcurementError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(ProcurementError):
    status_code = 404


class Conflict(ProcurementError):
    status_code = 409


class OrderNotFound(NotFound):
    def __init__(self, order_id: int):
        super().__init__("Order not found")
        self.order_id = order_id


class OrderAlreadyReconciled(Conflict):
    def __init__(self, order_id: int):
        super().__init__("Order already reconciled")
        self.order_id = order_id


class UnknownOrderItem(ProcurementError):
    def __init__(self, order_item_id: int):
        super().__init__(f"Unknown order item {order_item_id} for this order")
        self.order_item_id = order_item_id


class SupplierUnavailable(ProcurementError):
    def __init__(self, supplier_id: int):
        super().__init__("Supplier not found or inactive")
        self.supplier_id = supplier_id


class ProductNotFound(NotFound):
    def __init__(self, label: str):
        super().__init__(f"Product not found: {label}")


class ProductInactive(ProcurementError):
    def __init__(self, name: str):
        super().__init__(f"Product is inactive: {name}")


class InvalidStatusTransition(ProcurementError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Invalid status transition {current} -> {target}")
        self.current = current
        self.target = target
