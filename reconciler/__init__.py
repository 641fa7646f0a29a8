"""Payment-gateway reconciliation service: webhook and poll entry points plus fulfillment."""
