"""HTTP API for the sales ledger."""
