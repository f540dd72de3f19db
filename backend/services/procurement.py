"""
Procurement service.

Point d'entrée des flux d'achat (commande -> livraison -> réconciliation)
pour la couche API.

Le calcul des pertes est centralisé dans :
    backend.services.loss
"""

from backend.services.orders import (
    create_order,
    get_order,
    list_orders,
    normalize_items,
    update_order_status,
)
from backend.services.reconciliation import (
    get_reconciliation,
    list_reconciliations,
    recent_reconciliations,
    reconcile_order,
    to_document,
)

__all__ = [
    "create_order",
    "get_order",
    "list_orders",
    "normalize_items",
    "update_order_status",
    "get_reconciliation",
    "list_reconciliations",
    "recent_reconciliations",
    "reconcile_order",
    "to_document",
]
