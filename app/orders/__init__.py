"""
Orders app.

Read-side view of the storefront's checkout data that the refund engine
consumes: stores, orders with their line items, and captured payments.
The checkout subsystem owns the lifecycle of these records; this app
never moves an order back out of ``paid``.

Usage:
    from orders.services import OrderPaymentLookup

    resolved = OrderPaymentLookup.resolve(store=store, order_id=order_id)
    resolved.order, resolved.payment, resolved.items
"""
