"""
Ops — typed command dispatch.

    from storefront import ops as O

    runner = O.ops().on(RefundPayment, refund_payment).compile().inject(PaymentLifecycle, payments)
    result = await runner.run(RefundPayment("pay_1", Decimal("50000"), "damaged"))
"""

from storefront.ops._graph import (
    Op,
    Returning,
    HandlerFunc,
    OpsBuilder,
    Runner,
    ops,
)

__all__ = (
    "Op",
    "Returning",
    "HandlerFunc",
    "OpsBuilder",
    "Runner",
    "ops",
)
