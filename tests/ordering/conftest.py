from dataclasses import dataclass

import pytest

from ordering.cart.cart import CartSnapshot


@pytest.fixture()
def coordinator(database, addresses, authorizer):
    from ordering.order.coordinator import OrderCommitCoordinator

    return OrderCommitCoordinator(database, addresses, authorizer)


@dataclass
class PaidCart:
    snapshot: CartSnapshot
    address_id: str
    payment_reference_id: str
    amount: int


@pytest.fixture()
def paid_cart(buyer, carts, addresses, authorizer, gateway, make_product, address_fields):
    """Factory: fill the buyer's cart, save an address and capture a payment for it.

    ``paid_cart([("Alebrije", "120.00", 1)])`` returns a ``PaidCart`` ready to commit.
    """

    def _pay(items=(("Alebrije de cobre", "120.00", 1),), ctx=None):
        ctx = ctx or buyer
        for name, price, quantity in items:
            carts.add_item(ctx, make_product(name=name, price=price), quantity)
        address_id = addresses.save(ctx.buyer_id, address_fields)
        intent = authorizer.create_intent(ctx)
        confirmation = gateway.confirm_card_payment(intent.client_secret, {"type": "card"}, {})
        return PaidCart(
            snapshot=carts.snapshot(ctx.buyer_id),
            address_id=address_id,
            payment_reference_id=confirmation.processor_reference_id,
            amount=intent.amount_minor_units,
        )

    return _pay
