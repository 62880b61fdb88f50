"""
Bounded-context modules.

Routers go through OpportunityView and BidLedger; storage and upstream
adapters are injected by `govbid.dependencies`.
"""
