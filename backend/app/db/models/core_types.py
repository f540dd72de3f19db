import enum


class SupplierStatus(str, enum.Enum):
    active = "ACTIVE"
    inactive = "INACTIVE"


class ProductStatus(str, enum.Enum):
    active = "ACTIVE"
    inactive = "INACTIVE"


class OrderStatus(str, enum.Enum):
    pending = "PENDING"
    delivered = "DELIVERED"
    reconciled = "RECONCILED"


class ReconciliationStatus(str, enum.Enum):
    complete = "COMPLETE"
    missing = "MISSING"
    excess = "EXCESS"


class MovementType(str, enum.Enum):
    manual_adjust = "MANUAL_ADJUST"


# Unités de mesure (chantier) : commandé vs reçu
MEASUREMENT_UNITS = (
    "kg",
    "ton",
    "litre",
    "adet",
    "m",
    "m²",
    "m³",
    "torba",
    "paket",
    "kutu",
    "rulo",
)

# PENDING -> DELIVERED -> RECONCILED ; RECONCILED uniquement via une réconciliation
MANUAL_STATUS_TRANSITIONS = {
    OrderStatus.pending: {OrderStatus.pending, OrderStatus.delivered},
    OrderStatus.delivered: {OrderStatus.delivered},
    OrderStatus.reconciled: set(),
}

# Quantités stockées en INTEGER (32 bits côté PostgreSQL)
MAX_QTY = 2**31 - 1
