"""Shared BDD fixtures and step definitions for pricing and checkout."""

import json

import pytest
from ordering.configuration.setting import SetConfiguration
from ordering.discount.issuance import IssueDiscountCode
from ordering.payment.gateway import set_gateway
from ordering.payment.gateway.fake_adapter import FakeGateway
from protean import current_domain
from pytest_bdd import given, parsers


@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def cart():
    """Raw cart items, in the shape a client submits them."""
    return []


@pytest.fixture()
def address():
    return {
        "street": "Av. Amazonas 123",
        "city": "Quito",
        "state": "Pichincha",
        "postal_code": "170135",
        "country": "EC",
    }


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse(
        'a cart item "{product_id}" from seller "{seller_id}" with quantity {quantity:d} '
        "at {price:f} and seller discount {discount:f}"
    )
)
def _(cart, product_id, seller_id, quantity, price, discount):
    cart.append(
        {
            "product_id": product_id,
            "seller_id": seller_id,
            "quantity": quantity,
            "base_price": price,
            "seller_discount_percentage": discount,
        }
    )


@given(parsers.cfparse('a discount code "{code}" worth {percentage:f} percent'))
def _(code, percentage):
    current_domain.process(IssueDiscountCode(code=code, percentage=percentage), asynchronous=False)


@given(parsers.cfparse('the setting "{key}" is "{value}"'))
def _(key, value):
    current_domain.process(SetConfiguration(key=key, value=json.dumps(json.loads(value))), asynchronous=False)


@given("the payment provider uses a hosted payment page", target_fixture="gateway")
def _():
    gateway = FakeGateway(confirms_synchronously=False)
    set_gateway(gateway, method="hosted")
    return gateway
