"""Per-process usage accounting for synthesis requests.

Responsibilities:
- Accumulate billed units per pricing bucket.
- Provide a summary for CLI output and host diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class UsageTracker:
    """Collect billed characters/bytes per pricing bucket."""

    billed_units: dict[str, int] = field(default_factory=dict)
    requests: int = 0

    def add_usage(self, pricing_bucket: str | None, units: int) -> None:
        """Add billed units for one successful synthesis call."""

        if pricing_bucket is None:
            return
        self.requests += 1
        self.billed_units[pricing_bucket] = (
            self.billed_units.get(pricing_bucket, 0) + max(0, int(units))
        )

    def total_units(self) -> int:
        """Return billed units across all buckets."""

        return sum(self.billed_units.values())

    def summary(self) -> dict[str, int]:
        """Return a summary dictionary keyed by bucket, plus totals."""

        summary = {bucket: self.billed_units[bucket] for bucket in sorted(self.billed_units)}
        summary["total_units"] = self.total_units()
        summary["requests"] = self.requests
        return summary
