"""
Wire — expose ops over HTTP.

    from storefront import wire as W

    endp = W.endpoint(runner).expose(
        W.HTTPRouteTrigger("POST", "/admin/stock/adjustments"),
        W.RequestResponseCodec(AdjustStockIn, StockItemOut),
    )
    app = W.from_application(W.application().mount(endp))
"""

from storefront.wire._types import (
    Method,
    HTTPRouteTrigger,
    ToDomain,
    FromDomain,
    RequestResponseCodec,
    Trigger,
    Codec,
    Exposure,
)
from storefront.wire._endpoint import Endpoint, endpoint, Application, application
from storefront.wire._errors import STATUS_FOR, status_for, unwrap_or_raise
from storefront.wire._fastapi import compile_routes, add_endpoint, from_application

__all__ = (
    "Method",
    "HTTPRouteTrigger",
    "ToDomain",
    "FromDomain",
    "RequestResponseCodec",
    "Trigger",
    "Codec",
    "Exposure",
    "Endpoint",
    "endpoint",
    "Application",
    "application",
    "STATUS_FOR",
    "status_for",
    "unwrap_or_raise",
    "compile_routes",
    "add_endpoint",
    "from_application",
)
