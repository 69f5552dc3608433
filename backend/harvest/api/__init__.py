"""HTTP surface and SQL persistence for the harvest ledger."""
