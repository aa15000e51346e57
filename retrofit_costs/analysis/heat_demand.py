"""
Heat demand and energy label analysis.

Each measure stores a heat-demand reduction per residence type and
construction period. The summed reduction is subtracted from the residence's
current energy use to estimate the energy label after retrofit.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from retrofit_costs.modeling.costing import residence_type_key
from retrofit_costs.modeling.formula import parse_number

# Lower bound of each label in kWh/m2 per year, best label first
ENERGY_LABEL_THRESHOLDS: Dict[str, float] = {
    'A++++': 0,
    'A+++': 50,
    'A++': 75,
    'A+': 105,
    'A': 160,
    'B': 190,
    'C': 250,
    'D': 290,
    'E': 335,
    'F': 380,
    'G': 1000,
}

CO2_FACTOR_PER_KWH = 0.21


def heat_demand_value(measure: Mapping[str, Any], residence_type: str, build_period: str) -> float:
    """Heat-demand reduction of a measure for a residence type and construction period."""
    table = measure.get('heat_demand') if isinstance(measure, Mapping) else None
    if not isinstance(table, Mapping):
        return 0.0

    type_key = residence_type_key(residence_type)
    values = table.get(type_key)
    if not values and type_key == 'grondgebonden':
        values = table.get('grongebonden')

    if not isinstance(values, list) or not values:
        return 0.0

    for entry in values:
        if isinstance(entry, Mapping) and entry.get('period') == build_period:
            return parse_number(entry.get('value')) or 0.0

    return 0.0


def determine_energy_label(
    energy_use: float,
    thresholds: Optional[Mapping[str, float]] = None,
) -> str:
    """Return the label whose lower bound is the highest one not above ``energy_use``."""
    ordered = sorted((thresholds or ENERGY_LABEL_THRESHOLDS).items(), key=lambda item: item[1])

    for (label, _), (_, next_bound) in zip(ordered, ordered[1:]):
        if energy_use < next_bound:
            return label

    return ordered[-1][0]


@dataclass
class LabelImprovement:
    current_energy_use: float
    new_energy_use: float
    current_label: str
    new_label: str
    steps_improved: int


def label_improvement(
    current_energy_use: float,
    total_heat_demand: float,
    thresholds: Optional[Mapping[str, float]] = None,
) -> LabelImprovement:
    """Energy label before and after subtracting the measures' heat-demand reduction."""
    thresholds = thresholds or ENERGY_LABEL_THRESHOLDS
    order = [label for label, _ in sorted(thresholds.items(), key=lambda item: item[1])]

    new_energy_use = current_energy_use - total_heat_demand
    current_label = determine_energy_label(current_energy_use, thresholds)
    new_label = determine_energy_label(new_energy_use, thresholds)

    return LabelImprovement(
        current_energy_use=current_energy_use,
        new_energy_use=new_energy_use,
        current_label=current_label,
        new_label=new_label,
        steps_improved=order.index(current_label) - order.index(new_label),
    )


def co2_reduction(total_heat_demand: float, factor: float = CO2_FACTOR_PER_KWH) -> float:
    """Rough CO2 reduction estimate from the total heat-demand reduction."""
    return total_heat_demand * factor
