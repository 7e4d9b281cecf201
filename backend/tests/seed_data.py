from datetime import datetime

from sqlalchemy.orm import Session

from fieldsales.models import (
    Branch,
    Brand,
    Client,
    Order,
    OrderItem,
    OrderStatus,
    Plan,
    PlanAssignment,
    PlanProductTarget,
    Product,
    User,
    Visit,
    VisitStatus,
)

PASSWORD = "password123"
CANCEL_NOTE = "Nazvati ponovo\n--- RAZLOG OTKAZIVANJA ---\nBolovanje"


def seed_january(db: Session, ana: User, marko: User) -> dict[str, int]:
    """January 2024 for two commercials: 350 realized over three orders, four visits."""
    alpha = Brand(name="Alpha")
    db.add(alpha)
    db.flush()
    cream = Product(name="Krema", sku="KR-1", brand_id=alpha.id)
    syrup = Product(name="Sirup", sku="SI-1")
    centar = Client(name="Apoteka Centar")
    jug = Client(name="Apoteka Jug")
    db.add_all([cream, syrup, centar, jug])
    db.flush()
    branch = Branch(client_id=centar.id, name="Centar 1")
    db.add(branch)
    db.flush()

    db.add_all(
        [
            Visit(
                commercial_id=ana.id,
                client_id=centar.id,
                scheduled_at=datetime(2024, 1, 10, 9),
                status=VisitStatus.DONE,
                branches=[branch],
            ),
            Visit(
                commercial_id=ana.id,
                client_id=jug.id,
                scheduled_at=datetime(2024, 1, 12, 10),
                status=VisitStatus.DONE,
            ),
            Visit(
                commercial_id=marko.id,
                client_id=jug.id,
                scheduled_at=datetime(2024, 1, 15, 11),
                status=VisitStatus.CANCELED,
                note=CANCEL_NOTE,
            ),
            Visit(
                commercial_id=marko.id,
                client_id=centar.id,
                scheduled_at=datetime(2024, 1, 20, 8),
                status=VisitStatus.PLANNED,
            ),
        ]
    )

    def add_order(
        commercial: User,
        client: Client,
        created_at: datetime,
        status: OrderStatus,
        total: float,
        product: Product,
        quantity: int,
    ) -> None:
        order = Order(
            commercial_id=commercial.id,
            client_id=client.id,
            created_at=created_at,
            status=status,
            total_amount=total,
        )
        order.items = [
            OrderItem(
                product_id=product.id,
                quantity=quantity,
                unit_price=total / quantity,
                line_total=total,
            )
        ]
        db.add(order)

    add_order(ana, centar, datetime(2024, 1, 13, 12), OrderStatus.APPROVED, 100.0, cream, 2)
    add_order(ana, jug, datetime(2024, 1, 25, 9), OrderStatus.COMPLETED, 200.0, syrup, 4)
    add_order(marko, centar, datetime(2024, 1, 22, 14), OrderStatus.APPROVED, 50.0, cream, 1)
    add_order(marko, jug, datetime(2024, 1, 23, 14), OrderStatus.PENDING, 999.0, syrup, 1)
    add_order(ana, centar, datetime(2023, 12, 5, 10), OrderStatus.APPROVED, 100.0, cream, 2)

    ana_plan = Plan(commercial_id=ana.id, year=2024, month=1, total_target=400.0)
    ana_plan.product_targets = [PlanProductTarget(product_id=cream.id, quantity_target=4)]
    team_plan = Plan(commercial_id=None, brand_id=alpha.id, year=2024, month=1)
    team_plan.assignments = [PlanAssignment(commercial_id=marko.id, target=100.0)]
    db.add_all([ana_plan, team_plan])
    db.commit()

    return {
        "ana_plan": ana_plan.id,
        "team_plan": team_plan.id,
        "centar": centar.id,
        "jug": jug.id,
        "branch": branch.id,
        "cream": cream.id,
    }
