from fieldsales.models.branch import Branch
from fieldsales.models.brand import Brand
from fieldsales.models.client import Client
from fieldsales.models.order import Order, OrderItem, OrderStatus
from fieldsales.models.plan import Plan, PlanAssignment, PlanProductTarget
from fieldsales.models.product import Product
from fieldsales.models.user import User, UserRole
from fieldsales.models.visit import Visit, VisitStatus, visit_branches

__all__ = [
    "Branch",
    "Brand",
    "Client",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Plan",
    "PlanAssignment",
    "PlanProductTarget",
    "Product",
    "User",
    "UserRole",
    "Visit",
    "VisitStatus",
    "visit_branches",
]
