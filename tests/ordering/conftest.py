import os

import pytest


@pytest.fixture(scope="session")
def _ordering_domain(request):
    """Initialize the ordering domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from ordering.domain import ordering

    ordering.init()
    return ordering


@pytest.fixture(autouse=True)
def run_around_tests(_ordering_domain):
    """Push domain context before each test, cleanup after."""
    from ordering.payment.gateway import reset_gateway

    ctx = _ordering_domain.domain_context()
    ctx.push()
    reset_gateway()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()
    reset_gateway()
    ctx.pop()


@pytest.fixture()
def fake_gateway():
    """A synchronous FakeGateway registered for card payments."""
    from ordering.payment.gateway import set_gateway
    from ordering.payment.gateway.fake_adapter import FakeGateway

    gateway = FakeGateway()
    set_gateway(gateway)
    return gateway


@pytest.fixture()
def hosted_gateway():
    """A FakeGateway that behaves like a hosted payment page (pending + redirect)."""
    from ordering.payment.gateway import set_gateway
    from ordering.payment.gateway.fake_adapter import FakeGateway

    gateway = FakeGateway(confirms_synchronously=False)
    set_gateway(gateway, method="hosted")
    return gateway


ADDRESS = {
    "street": "Av. Amazonas 123",
    "city": "Quito",
    "state": "Pichincha",
    "postal_code": "170135",
    "country": "EC",
}


def cart_item(product_id="p1", quantity=1, base_price=20.0, seller_id="seller-1", seller_discount=0.0):
    return {
        "product_id": product_id,
        "quantity": quantity,
        "base_price": base_price,
        "seller_id": seller_id,
        "seller_discount_percentage": seller_discount,
    }


@pytest.fixture()
def place_order():
    """Run a checkout with sensible defaults; keyword arguments override them."""
    from ordering.checkout.checkout import checkout

    def _place(items=None, user_id="cust-001", method="card", **kwargs):
        return checkout(
            user_id=user_id,
            payment_info={"method": method},
            shipping_address=kwargs.pop("shipping_address", ADDRESS),
            billing_address=kwargs.pop("billing_address", None),
            items=items if items is not None else [cart_item()],
            **kwargs,
        )

    return _place
