from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from domain.pipeline import PipelineResult

from .formatting import format_count, format_decimal


@dataclass
class AssetSummary:
    asset: str
    quantity: Decimal
    transaction_count: int
    consolidated_count: int


@dataclass
class RunSummary:
    total_count: int
    consolidated_count: int
    tax_record_count: int
    assets: list[AssetSummary] = field(default_factory=list)


def compute_run_summary(result: PipelineResult) -> RunSummary:
    assets = [
        AssetSummary(
            asset=asset,
            quantity=ledger.quantity,
            transaction_count=ledger.transaction_count,
            consolidated_count=len(ledger.consolidated_entries),
        )
        for asset, ledger in sorted(result.asset_ledgers.items())
    ]
    return RunSummary(
        total_count=result.counters.total_count,
        consolidated_count=result.counters.post_consolidation_count,
        tax_record_count=len(result.tax_records),
        assets=assets,
    )


def render_run_summary(summary: RunSummary) -> None:
    print("Assets:")
    if not summary.assets:
        print("  (empty)")
        return

    rows = [
        (
            asset.asset,
            format_decimal(asset.quantity),
            format_count(asset.transaction_count),
            format_count(asset.consolidated_count),
        )
        for asset in summary.assets
    ]
    labels = ("Asset", "Quantity", "Txs count", "Consolidated")
    widths = [max(len(labels[idx]), max(len(row[idx]) for row in rows)) for idx in range(len(labels))]

    header = (
        f"{labels[0]:<{widths[0]}} {labels[1]:>{widths[1]}} "
        f"{labels[2]:>{widths[2]}} {labels[3]:>{widths[3]}}"
    )
    lines = [header, "-" * len(header)]
    for asset, quantity, count, consolidated in rows:
        lines.append(
            f"{asset:<{widths[0]}} {quantity:>{widths[1]}} {count:>{widths[2]}} {consolidated:>{widths[3]}}"
        )

    for line in lines:
        print(line)
    print()
    print(f"Consolidated from {format_count(summary.total_count)} to {format_count(summary.consolidated_count)}")
    print(f"TokenTax records: {format_count(summary.tax_record_count)}")
