"""
Audit app.

Append-only audit trail of business actions (refunds created, splits
reversed). Writing an audit entry never blocks the action it describes.

Usage:
    from audit.services import AuditService

    AuditService.log(
        action=AuditAction.REFUND_CREATED,
        entity_type="Refund",
        entity_id=refund.id,
        actor=request.user,
        description="full refund created for order ...",
        request=request,
    )
"""
