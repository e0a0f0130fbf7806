"""
Refunds app: refund orchestration and post-refund compensations.

A refund request is validated, serialized per order with a Redis lock,
executed through the order's payment provider and recorded once. Stock
restoration and payment split reversal then run from a durable outbox
(CompensationTask) with Celery retries.

Usage:
    from refunds.services import RefundService

    outcome = RefundService.create_refund(
        store=user.store,
        actor=user,
        order_id=order.id,
        data={"refund_type": "partial", "amount": "25.00", "items": [...]},
    )
"""
