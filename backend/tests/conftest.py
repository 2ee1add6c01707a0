"""
Pytest fixtures for the fulfillment portal backend tests.

Provides an in-memory database per test, the fake identity provider,
employee and order factories, and helpers to drive orders through the
pipeline.
"""

import pytest

from portal import create_app
from portal.extensions import db
from portal.models import Order, OrderLine, User
from portal.services import cash_service, fulfillment_service
from portal.services.employee_service import EmployeeContext


ADMIN_EMAIL = "admin@shop.test"
WEBHOOK_SECRET = "whsec_test"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'IDENTITY_PROVIDER': 'fake',
        'ADMIN_EMAILS': [ADMIN_EMAIL],
        'PAYMENT_WEBHOOK_SECRET': WEBHOOK_SECRET,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def identity(app):
    """The app's FakeIdentityProvider."""
    return app.extensions["identity_provider"]


# =============================================================================
# EMPLOYEES
# =============================================================================

@pytest.fixture(scope='function')
def make_employee(identity):
    """Factory: create an employee (store user + identity user) and return its context."""
    counter = {"n": 0}

    def _make(role: str, *, first_name: str | None = None, status: str = "active") -> EmployeeContext:
        counter["n"] += 1
        n = counter["n"]
        first_name = first_name or f"{role.title()}{n}"
        email = f"{role}{n}@shop.test"
        ident = identity.add_user(email, identity_id=f"emp_{role}_{n}", first_name=first_name, last_name="Staff")

        user = User(
            identity_id=ident.identity_id,
            email=email,
            first_name=first_name,
            last_name="Staff",
            is_employee=True,
            employee_role=role,
            employee_status=status,
        )
        db.session.add(user)
        db.session.commit()
        return EmployeeContext.from_user(user)

    return _make


@pytest.fixture(scope='function')
def staff(make_employee):
    """One active employee per role."""
    return {
        role: make_employee(role)
        for role in ("callcenter", "packer", "warehouse", "deliveryman", "accounts", "incharge")
    }


@pytest.fixture(scope='function')
def auth_headers(identity):
    """Helper to create Authorization headers for an identity id."""
    def _headers(identity_id: str) -> dict:
        return {'Authorization': f'Bearer {identity.issue_token(identity_id)}'}
    return _headers


# =============================================================================
# ORDERS
# =============================================================================

@pytest.fixture(scope='function')
def make_order(app):
    """Factory: create an order with one line. Defaults to a 49.99 COD order."""
    counter = {"n": 0}

    def _make(**overrides) -> Order:
        counter["n"] += 1
        total = overrides.pop("total_price_cents", 4999)
        values = {
            "order_number": f"ORD-{counter['n']:05d}",
            "customer_name": "Casey Customer",
            "customer_email": "casey@example.com",
            "customer_phone": "+1 555 0100",
            "shipping_name": "Casey Customer",
            "shipping_street": "1 Main St",
            "shipping_city": "Springfield",
            "shipping_state": "IL",
            "shipping_postal_code": "62701",
            "shipping_country": "US",
            "total_price_cents": total,
            "payment_method": "cash_on_delivery",
            "status": "pending",
        }
        values.update(overrides)
        order = Order(**values)
        order.lines.append(
            OrderLine(
                product_ref="prod_1",
                product_name="Desk Lamp",
                quantity=1,
                unit_price_cents=total,
                line_total_cents=total,
            )
        )
        db.session.add(order)
        db.session.commit()
        return order

    return _make


PIPELINE = (
    "address_confirmed",
    "order_confirmed",
    "packed",
    "ready_for_delivery",
    "out_for_delivery",
    "cash_collected",
    "delivered",
)


@pytest.fixture(scope='function')
def drive(staff):
    """Helper: move an order forward through the pipeline up to `stage`."""
    def _drive(order_id: int, stage: str, *, deliveryman: EmployeeContext | None = None) -> Order:
        deliveryman = deliveryman or staff["deliveryman"]
        steps = {
            "address_confirmed": lambda: fulfillment_service.confirm_address(order_id, staff["callcenter"]),
            "order_confirmed": lambda: fulfillment_service.confirm_order(order_id, staff["callcenter"]),
            "packed": lambda: fulfillment_service.mark_as_packed(order_id, staff["packer"]),
            "ready_for_delivery": lambda: fulfillment_service.assign_deliveryman(
                order_id, staff["warehouse"], deliveryman.user_id
            ),
            "out_for_delivery": lambda: fulfillment_service.start_delivery(order_id, deliveryman),
            "cash_collected": lambda: cash_service.collect_cash(order_id, deliveryman, "49.99"),
            "delivered": lambda: fulfillment_service.mark_as_delivered(order_id, deliveryman),
        }
        order = None
        for name in PIPELINE[:PIPELINE.index(stage) + 1]:
            order = steps[name]()
        return order

    return _drive
