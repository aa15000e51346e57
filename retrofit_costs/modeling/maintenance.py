"""
Maintenance cost projection.

Maintenance jobs (MJOB lines) are priced per occurrence. A job first occurs in
year ``cycle_start`` and then every ``cycle`` years within a fixed horizon.
Each occurrence is inflated by the number of years elapsed since year 0, so
the job in year 20 costs ``price * (1 + inflation) ** 20``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from retrofit_costs.modeling.costing import LineResult, MaintenanceLineItem


MAINTENANCE_HORIZON_YEARS = 40


@dataclass
class MaintenanceProjection:
    total_40_years: float = 0.0
    per_year: float = 0.0
    occurrences: List[Tuple[float, float]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'total40Years': self.total_40_years,
            'perYear': self.per_year,
        }


class MaintenanceAmortizer:
    """Projects maintenance line results over the maintenance horizon."""

    def __init__(self, horizon_years: int = MAINTENANCE_HORIZON_YEARS):
        if horizon_years <= 0:
            raise ValueError("Maintenance horizon must be greater than zero.")
        self.horizon_years = int(horizon_years)

    def occurrence_years(self, meta: MaintenanceLineItem) -> List[float]:
        """Years (counted from 0) in which the job is carried out.

        A negative cycle start is treated as year 0: the job is due now.
        """
        if meta.cycle <= 0 or meta.cycle_start >= self.horizon_years:
            return []

        years = []
        year = max(float(meta.cycle_start), 0.0)
        while year < self.horizon_years:
            years.append(year)
            year += meta.cycle
        return years

    def project(
        self,
        line_result: LineResult,
        meta: MaintenanceLineItem,
        inflation_percent: float,
    ) -> MaintenanceProjection:
        """Project one maintenance line over the horizon.

        Args:
            line_result: Calculated price per occurrence
            meta: Recurrence metadata (cycle start and cycle length in years)
            inflation_percent: Annual inflation, e.g. 2 for 2%

        Returns:
            Total over the horizon and its straight-line average per year
        """
        if not line_result.is_valid:
            return MaintenanceProjection()

        growth = 1 + float(inflation_percent) / 100
        occurrences = [
            (year, line_result.total_price * growth ** year)
            for year in self.occurrence_years(meta)
        ]
        total = sum(cost for _, cost in occurrences)

        return MaintenanceProjection(
            total_40_years=total,
            per_year=total / self.horizon_years,
            occurrences=occurrences,
        )

    def project_lines(
        self,
        line_results: Sequence[LineResult],
        meta_items: Sequence[MaintenanceLineItem],
        inflation_percent: float,
    ) -> MaintenanceProjection:
        """Project all maintenance lines of a measure and sum them.

        Lines and metadata are matched by position; the names must agree as
        well. Lines without matching metadata are skipped with a warning.
        """
        combined = MaintenanceProjection()

        for index, line in enumerate(line_results):
            meta: Optional[MaintenanceLineItem] = meta_items[index] if index < len(meta_items) else None
            if meta is None or meta.name != line.name:
                message = f"Onderhoudscyclus ontbreekt voor {line.name}"
                logger.warning(
                    f"Skipping maintenance line {index} ('{line.name}'): "
                    f"metadata {'missing' if meta is None else repr(meta.name)}"
                )
                combined.warnings.append(message)
                continue

            projection = self.project(line, meta, inflation_percent)
            combined.total_40_years += projection.total_40_years
            combined.occurrences.extend(projection.occurrences)

        combined.per_year = combined.total_40_years / self.horizon_years
        return combined


def yearly_job_cost(line_result: LineResult, meta: MaintenanceLineItem) -> float:
    """Cost of a job spread over its own cycle (used for per-line reporting)."""
    if meta.cycle <= 0:
        return 0.0
    return line_result.total_price / meta.cycle
