"""Calculation settings passed explicitly into the aggregate, maintenance and budget code."""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from retrofit_costs.modeling.formula import parse_number

# Markup percentages, in the order they appear on the budget breakdown
MARKUP_FIELDS = (
    'abkMaterieel',
    'afkoop',
    'kostenPlanuitwerking',
    'nazorgService',
    'carPiDicVerzekering',
    'bankgarantie',
    'algemeneKosten',
    'risico',
    'winst',
    'planvoorbereiding',
    'huurdersbegeleiding',
)


@dataclass(frozen=True)
class CalculationSettings:
    hourlyLaborCost: float = 51.0
    vatPercentage: float = 21.0
    inflationPercentage: float = 1.0
    cornerHouseCorrection: float = -10.0
    abkMaterieel: float = 5.0
    afkoop: float = 2.0
    kostenPlanuitwerking: float = 3.0
    nazorgService: float = 1.5
    carPiDicVerzekering: float = 1.0
    bankgarantie: float = 0.5
    algemeneKosten: float = 8.0
    risico: float = 2.0
    winst: float = 5.0
    planvoorbereiding: float = 3.0
    huurdersbegeleiding: float = 2.0
    custom_amounts: List[float] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "CalculationSettings":
        """Build settings from a stored settings record.

        Unknown keys are ignored. Custom fixed amounts come from the
        ``customFields`` list, or from the legacy ``customValue1``/``customValue2``
        fields when no custom fields are stored.
        """
        raw = dict(raw or {})
        values: Dict[str, Any] = {}
        for spec in fields(cls):
            if spec.name == 'custom_amounts' or spec.name not in raw:
                continue
            number = parse_number(raw[spec.name])
            if number is None:
                raise ValueError(f"Setting '{spec.name}' must be numeric, got {raw[spec.name]!r}.")
            values[spec.name] = number

        custom_fields = raw.get('customFields') or []
        if custom_fields:
            amounts = [parse_number(item.get('value')) for item in custom_fields if isinstance(item, Mapping)]
        else:
            amounts = [parse_number(raw.get(key)) for key in ('customValue1', 'customValue2')]
        values['custom_amounts'] = [amount for amount in amounts if amount]

        return cls(**values)

    def markups(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in MARKUP_FIELDS}
