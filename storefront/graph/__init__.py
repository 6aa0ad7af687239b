"""
Graph — nodnod dependency graphs for multi-step flows.

    from storefront import graph as G

    @G.node
    class ValidatedItems:
        @classmethod
        async def __compose__(cls, ctx: CheckoutContext) -> "ValidatedItems":
            ...

    pipeline = G.graph(PlacedOrder)
    placed = await pipeline.run().inject(ctx)
"""

from nodnod import scalar_node as node

from storefront.graph._run import Compiled, Run, graph, run

__all__ = ("node", "Run", "run", "Compiled", "graph")
