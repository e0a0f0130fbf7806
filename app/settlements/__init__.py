"""
Settlements app: the split-payment ledger.

When an order is paid its revenue is split between the supplier, the
reseller and the platform, and one positive ledger entry is appended per
party. Refunds append the additive inverse of those entries. Entries are
never edited or deleted.

Usage:
    from settlements.services import SplitLedgerService

    result = SplitLedgerService.reverse_split(
        order=order,
        reason="Refund: damaged item",
        actor=user,
        actor_role=ActorRole.ADMIN,
        refund=refund,
    )
    if not result.success:
        logger.error(result.error)
"""
