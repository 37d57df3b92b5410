"""Record ingestion: batched natural-key reconciliation and upsert."""
