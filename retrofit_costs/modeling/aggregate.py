"""
Measure aggregation.

Rolls the investment and maintenance price lines of the selected measures into
the totals shown on the cost overview: investment, heat-demand reduction,
maintenance over the horizon and the total cost of ownership (TCO).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd
from loguru import logger

from retrofit_costs.analysis.heat_demand import heat_demand_value
from retrofit_costs.modeling.costing import (
    AggregateResult,
    MaintenanceLineItem,
    PriceLineCalculator,
    PriceLineItem,
    as_price_item,
    summary_notes,
)
from retrofit_costs.modeling.formula import parse_number
from retrofit_costs.modeling.maintenance import (
    MAINTENANCE_HORIZON_YEARS,
    MaintenanceAmortizer,
    MaintenanceProjection,
)
from retrofit_costs.modeling.settings import CalculationSettings


def _price_items(raw_items: Any, maintenance: bool = False) -> List[PriceLineItem]:
    if raw_items is None:
        return []
    if not isinstance(raw_items, (list, tuple)):
        logger.warning(f"Price lines are not a list: {raw_items!r}")
        return []
    return [as_price_item(item, maintenance=maintenance) for item in raw_items]


@dataclass
class Measure:
    """A retrofit measure with its investment and maintenance price lines."""
    name: str
    group: str = ''
    measure_prices: List[PriceLineItem] = field(default_factory=list)
    mjob_prices: List[MaintenanceLineItem] = field(default_factory=list)
    heat_demand: Dict[str, Any] = field(default_factory=dict)
    nuisance: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "Measure":
        if not isinstance(raw, Mapping):
            logger.warning(f"Ignoring malformed measure record: {raw!r}")
            return cls(name="Unnamed")
        return cls(
            name=str(raw.get('name') or "Unnamed"),
            group=raw.get('group') or '',
            measure_prices=_price_items(raw.get('measure_prices')),
            mjob_prices=_price_items(raw.get('mjob_prices'), maintenance=True),
            heat_demand=dict(raw['heat_demand']) if isinstance(raw.get('heat_demand'), Mapping) else {},
            nuisance=parse_number(raw.get('nuisance')),
        )


@dataclass
class MeasureResult:
    name: str
    group: str
    investment: AggregateResult
    maintenance: AggregateResult
    projection: MaintenanceProjection
    heat_demand_value: float = 0.0
    nuisance: float = 0.0
    jobs: List[MaintenanceLineItem] = field(default_factory=list)

    @property
    def price(self) -> float:
        """Investment that counts towards the totals (0 when the measure is invalid)."""
        return self.investment.price if self.investment.is_valid else 0.0

    @property
    def is_valid(self) -> bool:
        return self.investment.is_valid

    @property
    def warnings(self) -> List[str]:
        return (
            list(self.investment.warning_log)
            + list(self.maintenance.warning_log)
            + list(self.projection.warnings)
        )


@dataclass
class ProjectSummary:
    total_investment: float = 0.0
    total_heat_demand: float = 0.0
    maintenance_40_years: float = 0.0
    maintenance_per_year: float = 0.0
    highest_nuisance: float = 0.0
    horizon_years: int = MAINTENANCE_HORIZON_YEARS
    measures: List[MeasureResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def total_cost_of_ownership(self) -> float:
        return self.total_investment + self.maintenance_40_years

    @property
    def invalid_measures(self) -> List[str]:
        return [result.name for result in self.measures if not result.is_valid]


MeasureLike = Union[Measure, Mapping[str, Any]]


class AggregateCalculator:
    """
    Calculates measures for one residence and sums them into project totals.

    Usage:
        calculator = AggregateCalculator(settings)
        summary = calculator.calculate_project(
            measures, context, residence_type='Portiekflat', build_period='1965-1974'
        )
    """

    def __init__(
        self,
        settings: Optional[CalculationSettings] = None,
        price_calculator: Optional[PriceLineCalculator] = None,
        amortizer: Optional[MaintenanceAmortizer] = None,
    ):
        self.settings = settings or CalculationSettings()
        self.price_calculator = price_calculator or PriceLineCalculator()
        self.amortizer = amortizer or MaintenanceAmortizer()

    def calculate_measure(
        self,
        measure: MeasureLike,
        context: Optional[Mapping[str, Any]],
        residence_type: str = '',
        build_period: str = '',
        split_prices: bool = False,
    ) -> MeasureResult:
        """Investment, maintenance projection and heat demand of one measure."""
        if not isinstance(measure, Measure):
            measure = Measure.from_dict(measure)

        investment = self.price_calculator.calculate_lines(
            measure.measure_prices, context, residence_type, split_prices
        )

        if measure.mjob_prices:
            maintenance = self.price_calculator.calculate_lines(
                measure.mjob_prices, context, residence_type, split_prices
            )
            projection = self.amortizer.project_lines(
                maintenance.calculations,
                measure.mjob_prices,
                self.settings.inflationPercentage,
            )
        else:
            # No maintenance jobs is normal for many measures, not an error
            maintenance = AggregateResult(is_valid=True)
            projection = MaintenanceProjection()

        heat_demand = heat_demand_value(
            {'heat_demand': measure.heat_demand}, residence_type, build_period
        )

        if not investment.is_valid:
            logger.warning(f"Measure '{measure.name}' has invalid price lines: {investment.error_message}")

        return MeasureResult(
            name=measure.name,
            group=measure.group,
            investment=investment,
            maintenance=maintenance,
            projection=projection,
            heat_demand_value=heat_demand,
            nuisance=measure.nuisance or 0.0,
            jobs=list(measure.mjob_prices),
        )

    def summarize(self, results: Iterable[MeasureResult]) -> ProjectSummary:
        """Sum measure results; invalid measures contribute 0 but stay listed."""
        summary = ProjectSummary(horizon_years=self.amortizer.horizon_years, measures=list(results))

        for result in summary.measures:
            summary.total_investment += result.price
            summary.total_heat_demand += result.heat_demand_value
            summary.maintenance_40_years += result.projection.total_40_years
            summary.maintenance_per_year += result.projection.per_year
            summary.highest_nuisance = max(summary.highest_nuisance, result.nuisance)
            summary.warnings.extend(f"{result.name}: {message}" for message in result.warnings)

        return summary

    def calculate_project(
        self,
        measures: Iterable[MeasureLike],
        context: Optional[Mapping[str, Any]],
        residence_type: str = '',
        build_period: str = '',
        split_prices: bool = False,
    ) -> ProjectSummary:
        results = [
            self.calculate_measure(measure, context, residence_type, build_period, split_prices)
            for measure in measures
        ]
        summary = self.summarize(results)

        logger.info(
            f"Calculated {len(results)} measures: investment {summary.total_investment:,.2f}, "
            f"maintenance ({summary.horizon_years}y) {summary.maintenance_40_years:,.2f}"
        )
        if summary.invalid_measures:
            logger.warning(f"Measures with calculation errors: {', '.join(summary.invalid_measures)}")
        logger.debug(summary_notes(
            [result.investment for result in results] + [result.maintenance for result in results]
        ))

        return summary


def to_frame(summary: ProjectSummary) -> pd.DataFrame:
    """One row per measure, for CSV export and tabular reports."""
    records = [
        {
            'measure': result.name,
            'group': result.group,
            'investment': result.price,
            'investment_valid': result.is_valid,
            'maintenance_per_occurrence': result.maintenance.price,
            'maintenance_40_years': result.projection.total_40_years,
            'maintenance_per_year': result.projection.per_year,
            'heat_demand': result.heat_demand_value,
            'nuisance': result.nuisance,
            'errors': result.investment.error_message or '',
        }
        for result in summary.measures
    ]
    columns = [
        'measure', 'group', 'investment', 'investment_valid',
        'maintenance_per_occurrence', 'maintenance_40_years', 'maintenance_per_year',
        'heat_demand', 'nuisance', 'errors',
    ]
    return pd.DataFrame(records, columns=columns)
