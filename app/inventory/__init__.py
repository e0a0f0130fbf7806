"""
Inventory app.

Per-supplier stock pools and the checkout reservations that drew from
them. The refund engine credits consumed reservations back to the pool
that fulfilled them.
"""
