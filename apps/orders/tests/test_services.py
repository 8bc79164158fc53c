import importlib
import pytest
from decimal import Decimal
from uuid import uuid4
from django.db import DatabaseError
from apps.catalog.models import ProductSize
from apps.catalog.services import SoldOutError, create_product
from apps.orders.models import Order, OrderStatus, PaymentStatus
from apps.orders.notifications import fan_message, merchant_message
from apps.orders.signals import order_created, order_status_changed
from apps.orders.services import (
    Cart,
    ProductSnapshot,
    OrderBook,
    build_order,
    charge,
    checkout,
    create_order,
    update_status,
    cancel_order,
    fetch_orders_for_user,
    verify_pickup,
    render_pickup_qr,
    SimulatedPaymentGateway,
    PaymentFailureReason,
    InsufficientInventoryError,
    InvalidQuantityError,
    CartLineNotFoundError,
    EmptyCartError,
    MixedMerchantCartError,
    ProductUnavailableError,
    PaymentError,
    OrderNotFoundError,
    InvalidStatusTransitionError,
    InsufficientPermissionsError,
    InvalidPickupCodeError,
    PickupCodeAlreadyUsedError,
)
from .gateways import DecliningGateway, HangingGateway, RecordingGateway


def _snapshot(title='Shirt', price='20.00', inventory=None, band_id=None):
    inventory = inventory if inventory is not None else {'S': 2, 'M': 1}
    return ProductSnapshot(
        id=uuid4(),
        band_id=band_id or uuid4(),
        title=title,
        price=Decimal(price),
        sizes=tuple(inventory),
        inventory=inventory,
    )


def _stock(product, size):
    return ProductSize.objects.get(product=product, label=size).quantity


class TestCart:
    """Cart operations (no database)."""

    def test_add_up_to_stock(self):
        cart = Cart()
        shirt = _snapshot()

        cart.add_item(shirt, 'S', 2)

        assert len(cart) == 1
        assert cart.item_count == 2
        assert cart.total == Decimal('40.00')

    def test_add_beyond_stock_leaves_cart_unchanged(self):
        cart = Cart()
        shirt = _snapshot()
        cart.add_item(shirt, 'S', 2)

        with pytest.raises(InsufficientInventoryError):
            cart.add_item(shirt, 'S', 1)

        assert cart.lines[0].quantity == 2
        assert cart.total == Decimal('40.00')

    def test_same_product_and_size_merges(self):
        cart = Cart()
        shirt = _snapshot()

        cart.add_item(shirt, 'S')
        cart.add_item(shirt, 'S')
        cart.add_item(shirt, 'M')

        assert len(cart) == 2
        assert cart.lines[0].quantity == 2

    def test_merge_keeps_snapshot_from_first_selection(self):
        cart = Cart()
        shirt = _snapshot(price='25.00', inventory={'M': 2})
        repriced = ProductSnapshot(
            id=shirt.id,
            band_id=shirt.band_id,
            title=shirt.title,
            price=Decimal('99.00'),
            sizes=shirt.sizes,
            inventory={'M': 10},
        )
        cart.add_item(shirt, 'M', 1)

        cart.add_item(repriced, 'M', 1)

        assert cart.lines[0].product.price == Decimal('25.00')
        assert cart.total == Decimal('50.00')
        with pytest.raises(InsufficientInventoryError):
            cart.add_item(repriced, 'M', 1)
        assert cart.lines[0].quantity == 2

    def test_total_across_products(self):
        cart = Cart()
        cart.add_item(_snapshot(), 'S', 2)
        cart.add_item(_snapshot(title='Poster', price='9.99', inventory={'One Size': 5}), 'One Size', 3)

        assert cart.total == Decimal('69.97')

    def test_unknown_size_has_no_stock(self):
        cart = Cart()

        with pytest.raises(InsufficientInventoryError):
            cart.add_item(_snapshot(), 'XXL')

        assert cart.is_empty

    @pytest.mark.parametrize('quantity', [0, -1])
    def test_non_positive_quantity(self, quantity):
        cart = Cart()

        with pytest.raises(InvalidQuantityError):
            cart.add_item(_snapshot(), 'S', quantity)

    def test_update_quantity(self):
        cart = Cart()
        cart.add_item(_snapshot(), 'S', 1)

        cart.update_quantity(0, 2)
        assert cart.total == Decimal('40.00')

        with pytest.raises(InsufficientInventoryError):
            cart.update_quantity(0, 3)
        with pytest.raises(InvalidQuantityError):
            cart.update_quantity(0, 0)
        assert cart.lines[0].quantity == 2

    def test_remove_and_clear(self):
        cart = Cart()
        cart.add_item(_snapshot(), 'S', 1)
        cart.add_item(_snapshot(), 'M', 1)

        removed = cart.remove_item(0)
        assert removed.size == 'S'
        assert len(cart) == 1

        with pytest.raises(CartLineNotFoundError):
            cart.remove_item(5)

        cart.clear()
        assert cart.is_empty
        assert cart.total == Decimal('0.00')

    def test_subscribers_notified_on_success_only(self):
        cart = Cart()
        shirt = _snapshot()
        calls = []
        unsubscribe = cart.subscribe(lambda c: calls.append(c.total))

        cart.add_item(shirt, 'S', 1)
        with pytest.raises(InsufficientInventoryError):
            cart.add_item(shirt, 'S', 5)
        assert calls == [Decimal('20.00')]

        unsubscribe()
        cart.clear()
        assert len(calls) == 1


@pytest.mark.django_db
class TestBuildOrder:

    def test_draft_matches_cart(self, fan, band, event, product):
        cart = Cart()
        cart.add_item(product, 'M', 2)

        draft = build_order(cart, fan, band, event)

        assert draft.amount == cart.total == Decimal('50.00')
        assert draft.status == OrderStatus.PENDING_PICKUP
        assert draft.currency == 'USD'
        assert draft.event_id == event.id
        assert len(draft.lines) == 1
        assert draft.lines[0].product_title == 'Tour Shirt'
        assert draft.lines[0].product_price == Decimal('25.00')

    def test_pickup_codes_are_unique(self, fan, band, product):
        cart = Cart()
        cart.add_item(product, 'S', 1)

        first = build_order(cart, fan, band)
        second = build_order(cart, fan, band)

        assert first.qr_code.startswith('QR_')
        assert len(first.qr_code) == 35
        assert first.qr_code != second.qr_code

    def test_empty_cart(self, fan, band):
        with pytest.raises(EmptyCartError):
            build_order(Cart(), fan, band)

    def test_mixed_bands(self, fan, band, product, foreign_product):
        cart = Cart()
        cart.add_item(product, 'S', 1)
        cart.add_item(foreign_product, 'M', 1)

        with pytest.raises(MixedMerchantCartError):
            build_order(cart, fan, band)


class TestPayment:

    def test_simulated_charge(self):
        result = charge(
            Decimal('12.50'),
            reference='QR_test',
            gateway=SimulatedPaymentGateway(min_delay=0, max_delay=0)
        )

        assert result.transaction_id.startswith('pi_sim_')
        assert len(result.transaction_id) == 27
        assert result.amount == Decimal('12.50')
        assert result.currency == 'USD'

    @pytest.mark.parametrize('amount', [Decimal('0'), Decimal('-5.00')])
    def test_invalid_amount(self, amount):
        with pytest.raises(PaymentError) as excinfo:
            charge(amount, reference='QR_test', gateway=SimulatedPaymentGateway(0, 0))

        assert excinfo.value.reason == PaymentFailureReason.INVALID_AMOUNT
        assert str(excinfo.value) == 'Invalid payment amount.'

    def test_declined(self):
        with pytest.raises(PaymentError) as excinfo:
            charge(Decimal('10.00'), reference='QR_test', gateway=DecliningGateway())

        assert str(excinfo.value) == 'Payment failed. Please try again.'

    def test_timeout(self, settings):
        settings.PAYMENT_TIMEOUT_SECONDS = 0.05

        with pytest.raises(PaymentError) as excinfo:
            charge(Decimal('10.00'), reference='QR_test', gateway=HangingGateway())

        assert excinfo.value.reason == PaymentFailureReason.TIMEOUT


@pytest.mark.django_db
class TestCheckout:

    def test_successful_checkout(self, fan, band, event, product):
        order = checkout(
            user=fan,
            band=band,
            event=event,
            lines=[{'product_id': product.id, 'size': 'M', 'quantity': 2}],
        )

        assert order.status == OrderStatus.PENDING_PICKUP
        assert order.payment_status == PaymentStatus.SUCCEEDED
        assert order.transaction_id.startswith('pi_sim_')
        assert order.amount == Decimal('50.00')
        assert order.items.count() == 1
        assert _stock(product, 'M') == 3

    def test_lines_for_same_size_are_merged(self, fan, band, product):
        order = checkout(
            user=fan,
            band=band,
            lines=[
                {'product_id': product.id, 'size': 'S', 'quantity': 1},
                {'product_id': product.id, 'size': 'S', 'quantity': 1},
            ],
        )

        assert order.items.get().quantity == 2
        assert _stock(product, 'S') == 0

    def test_over_stock_is_rejected_before_payment(self, fan, band, product):
        gateway = RecordingGateway()

        with pytest.raises(InsufficientInventoryError):
            checkout(
                user=fan,
                band=band,
                lines=[{'product_id': product.id, 'size': 'S', 'quantity': 3}],
                gateway=gateway,
            )

        assert gateway.charges == []
        assert not Order.objects.exists()

    def test_payment_failure_leaves_no_trace(self, fan, band, product):
        with pytest.raises(PaymentError):
            checkout(
                user=fan,
                band=band,
                lines=[{'product_id': product.id, 'size': 'M', 'quantity': 1}],
                gateway=DecliningGateway(),
            )

        assert not Order.objects.exists()
        assert _stock(product, 'M') == 5

    def test_sold_out_after_payment_is_refunded(self, monkeypatch, fan, band, product):
        checkout_module = importlib.import_module('apps.orders.services.checkout')
        real_charge = checkout_module.charge
        gateway = RecordingGateway()

        def charge_while_someone_else_buys(amount, **kwargs):
            result = real_charge(amount, **kwargs)
            ProductSize.objects.filter(product=product, label='S').update(quantity=0)
            return result

        monkeypatch.setattr(checkout_module, 'charge', charge_while_someone_else_buys)

        with pytest.raises(SoldOutError) as excinfo:
            checkout(
                user=fan,
                band=band,
                lines=[{'product_id': product.id, 'size': 'S', 'quantity': 2}],
                gateway=gateway,
            )

        assert excinfo.value.refunded is True
        assert gateway.refunds == [gateway.charges[0].transaction_id]
        assert not Order.objects.exists()

    def test_failed_order_write_is_refunded(self, monkeypatch, fan, band, product):
        checkout_module = importlib.import_module('apps.orders.services.checkout')
        gateway = RecordingGateway()

        def failing_create_order(draft, **kwargs):
            raise DatabaseError('disk full')

        monkeypatch.setattr(checkout_module, 'create_order', failing_create_order)

        with pytest.raises(DatabaseError) as excinfo:
            checkout(
                user=fan,
                band=band,
                lines=[{'product_id': product.id, 'size': 'S', 'quantity': 1}],
                gateway=gateway,
            )

        assert excinfo.value.refunded is True
        assert gateway.refunds == [gateway.charges[0].transaction_id]
        assert not Order.objects.exists()
        assert _stock(product, 'S') == 2

    def test_inactive_product(self, fan, band, product):
        product.active = False
        product.save()

        with pytest.raises(ProductUnavailableError):
            checkout(
                user=fan,
                band=band,
                lines=[{'product_id': product.id, 'size': 'M', 'quantity': 1}],
            )

    def test_product_from_other_band(self, fan, band, event, foreign_product):
        with pytest.raises(MixedMerchantCartError):
            checkout(
                user=fan,
                band=band,
                event=event,
                lines=[{'product_id': foreign_product.id, 'size': 'M', 'quantity': 1}],
            )

    def test_product_not_sold_at_event(self, fan, band, event):
        unlinked = create_product(
            band=band,
            title='Online Exclusive',
            price=Decimal('15.00'),
            sizes=['M'],
            inventory={'M': 4},
        )

        with pytest.raises(ProductUnavailableError):
            checkout(
                user=fan,
                band=band,
                event=event,
                lines=[{'product_id': unlinked.id, 'size': 'M', 'quantity': 1}],
            )

    def test_unknown_product(self, fan, band):
        with pytest.raises(ProductUnavailableError):
            checkout(
                user=fan,
                band=band,
                lines=[{'product_id': uuid4(), 'size': 'M', 'quantity': 1}],
            )

    def test_empty_lines(self, fan, band):
        with pytest.raises(EmptyCartError):
            checkout(user=fan, band=band, lines=[])

    def test_order_created_signal_after_commit(
        self, fan, band, product, django_capture_on_commit_callbacks
    ):
        received = []

        def handler(sender, order, **kwargs):
            received.append(order.id)

        order_created.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                order = checkout(
                    user=fan,
                    band=band,
                    lines=[{'product_id': product.id, 'size': 'M', 'quantity': 1}],
                )
        finally:
            order_created.disconnect(handler)

        assert received == [order.id]


@pytest.mark.django_db
class TestOrderLifecycle:

    def test_pick_up(self, pending_order, merchant):
        order = update_status(pending_order.id, OrderStatus.PICKED_UP, actor=merchant)

        assert order.status == OrderStatus.PICKED_UP
        assert order.picked_up_by == merchant
        assert order.picked_up_at is not None

    def test_terminal_statuses_cannot_change(self, pending_order, merchant):
        update_status(pending_order.id, OrderStatus.PICKED_UP, actor=merchant)

        with pytest.raises(InvalidStatusTransitionError):
            update_status(pending_order.id, OrderStatus.CANCELLED, actor=merchant)
        with pytest.raises(InvalidStatusTransitionError):
            update_status(pending_order.id, OrderStatus.PENDING_PICKUP, actor=merchant)

    def test_unknown_status(self, pending_order):
        with pytest.raises(InvalidStatusTransitionError):
            update_status(pending_order.id, 'shipped')

    @pytest.mark.parametrize('order_id', [uuid4, lambda: 'not-a-uuid'])
    def test_order_not_found(self, order_id):
        with pytest.raises(OrderNotFoundError):
            update_status(order_id(), OrderStatus.CANCELLED)

    def test_cancel_returns_stock(self, pending_order, fan, product):
        assert _stock(product, 'M') == 3

        order = cancel_order(pending_order.id, fan)

        assert order.status == OrderStatus.CANCELLED
        assert order.cancelled_at is not None
        assert _stock(product, 'M') == 5

    def test_cancel_without_reservation_leaves_stock(self, fan, band, product):
        cart = Cart()
        cart.add_item(product, 'M', 2)
        order = create_order(build_order(cart, fan, band))
        assert not order.stock_reserved

        cancelled = cancel_order(order.id, fan)

        assert cancelled.status == OrderStatus.CANCELLED
        assert _stock(product, 'M') == 5

    def test_cancel_clears_reservation(self, pending_order, fan):
        assert pending_order.stock_reserved

        order = cancel_order(pending_order.id, fan)

        assert not order.stock_reserved

    def test_cancel_by_band_staff(self, pending_order, merchant):
        order = cancel_order(pending_order.id, merchant)

        assert order.status == OrderStatus.CANCELLED

    def test_cancel_by_stranger(self, pending_order, other_fan):
        with pytest.raises(InsufficientPermissionsError):
            cancel_order(pending_order.id, other_fan)

        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING_PICKUP

    def test_cancel_with_deleted_product(self, pending_order, fan, product):
        product.delete()

        order = cancel_order(pending_order.id, fan)

        assert order.status == OrderStatus.CANCELLED
        assert order.items.get().product_title == 'Tour Shirt'

    def test_orders_newest_first(self, pending_order, fan, band, poster):
        newer = checkout(
            user=fan,
            band=band,
            lines=[{'product_id': poster.id, 'size': 'One Size', 'quantity': 1}],
        )

        orders = list(fetch_orders_for_user(fan))

        assert [o.id for o in orders] == [newer.id, pending_order.id]
        assert list(fetch_orders_for_user(fan, status=OrderStatus.CANCELLED)) == []

    def test_status_signal_after_commit(
        self, pending_order, merchant, django_capture_on_commit_callbacks
    ):
        received = []

        def handler(sender, order, previous_status, new_status, **kwargs):
            received.append((previous_status, new_status))

        order_status_changed.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                update_status(pending_order.id, OrderStatus.PICKED_UP, actor=merchant)
        finally:
            order_status_changed.disconnect(handler)

        assert received == [(OrderStatus.PENDING_PICKUP, OrderStatus.PICKED_UP)]


@pytest.mark.django_db
class TestOrderBook:

    def test_summary(self, pending_order, fan, band, poster, merchant):
        other = checkout(
            user=fan,
            band=band,
            lines=[{'product_id': poster.id, 'size': 'One Size', 'quantity': 2}],
        )
        update_status(other.id, OrderStatus.PICKED_UP, actor=merchant)

        summary = OrderBook.for_merchant(band).summary()

        assert summary == {
            'total_orders': 2,
            'pending_count': 1,
            'completed_count': 1,
            'cancelled_count': 0,
            'total_revenue': Decimal('19.98'),
            'pending_revenue': Decimal('50.00'),
        }

    def test_update_replaces_cached_order(self, pending_order, band, merchant):
        book = OrderBook.for_merchant(band)
        seen = []
        book.subscribe(lambda b: seen.append(len(b.pending)))

        book.update_status(pending_order.id, OrderStatus.PICKED_UP, actor=merchant)

        assert book.get(pending_order.id).status == OrderStatus.PICKED_UP
        assert book.pending == []
        assert seen == [0]

    def test_failed_update_keeps_cache(self, pending_order, band, merchant):
        update_status(pending_order.id, OrderStatus.CANCELLED, actor=merchant)
        book = OrderBook.for_merchant(band)
        seen = []
        book.subscribe(seen.append)

        with pytest.raises(InvalidStatusTransitionError):
            book.update_status(pending_order.id, OrderStatus.PICKED_UP, actor=merchant)

        assert book.get(pending_order.id).status == OrderStatus.CANCELLED
        assert seen == []

    def test_order_outside_book_is_not_found(self, pending_order, other_fan):
        book = OrderBook.for_user(other_fan)

        with pytest.raises(OrderNotFoundError):
            book.update_status(pending_order.id, OrderStatus.CANCELLED, actor=other_fan)

        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING_PICKUP
        assert book.orders == ()

    def test_for_user(self, pending_order, fan, other_fan):
        assert len(OrderBook.for_user(fan).orders) == 1
        assert OrderBook.for_user(other_fan).orders == ()


@pytest.mark.django_db
class TestPickup:

    def test_valid_code(self, pending_order, merchant):
        result = verify_pickup(pending_order.qr_code, merchant)

        assert result.order.status == OrderStatus.PICKED_UP
        assert result.order.picked_up_by == merchant
        assert len(result.items) == 1

    def test_second_scan(self, pending_order, merchant):
        verify_pickup(pending_order.qr_code, merchant)

        with pytest.raises(PickupCodeAlreadyUsedError) as excinfo:
            verify_pickup(pending_order.qr_code, merchant)

        assert excinfo.value.order.id == pending_order.id

    def test_cancelled_order(self, pending_order, fan, merchant):
        cancel_order(pending_order.id, fan)

        with pytest.raises(PickupCodeAlreadyUsedError):
            verify_pickup(pending_order.qr_code, merchant)

    def test_unknown_code(self, merchant):
        with pytest.raises(InvalidPickupCodeError):
            verify_pickup('QR_' + '0' * 32, merchant)

    def test_other_band_staff(self, pending_order, other_merchant):
        with pytest.raises(InsufficientPermissionsError):
            verify_pickup(pending_order.qr_code, other_merchant)

        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING_PICKUP

    def test_platform_admin(self, pending_order, admin_user):
        result = verify_pickup(pending_order.qr_code, admin_user)

        assert result.order.status == OrderStatus.PICKED_UP


@pytest.mark.django_db
class TestNotificationsAndQr:

    def test_messages(self, pending_order):
        code = pending_order.short_code

        assert code in fan_message(pending_order)
        assert 'ready for pickup' in fan_message(pending_order)
        assert 'picked up' in fan_message(pending_order, OrderStatus.PICKED_UP)
        assert merchant_message(pending_order) == f"New order #{code} - 50.00 USD"

    def test_qr_png(self):
        png = render_pickup_qr('QR_' + 'a' * 32)

        assert png.startswith(b'\x89PNG\r\n\x1a\n')
