"""Domain models and processing stages for the Binance ledger tax engine.

This package holds the in-memory (Pydantic) ledger and TokenTax record models
together with the pure stages that order, partition, consolidate and classify
ledger entries. Nothing in here reads or writes files.
"""

__all__ = [
    "asset_ledger",
    "classifier",
    "errors",
    "ledger",
    "ordering",
    "period_consolidator",
    "pipeline",
    "window_consolidator",
]
