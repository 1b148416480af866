"""FastAPI surface for the result ledger."""
