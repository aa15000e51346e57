"""Price line costing shared by investment and maintenance calculations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from loguru import logger

from retrofit_costs.modeling.formula import (
    CalculationToken,
    Evaluation,
    Step,
    VariableResolver,
    evaluate,
    parse_formula,
    parse_number,
)


EMPTY_INPUT_MESSAGE = "Geen berekeningen of data beschikbaar"
DEFAULT_UNIT = "m²"
RESIDENCE_TYPES = ('grondgebonden', 'portiek', 'gallerij')


def residence_type_key(residence_type: Optional[str]) -> str:
    """Map a free-text residence type onto one of the priced residence types.

    Matching is a case-insensitive substring test, so ``"Portiekflat"`` maps
    to ``portiek``. Both spellings of galerij are accepted; anything else is
    ``grondgebonden``.
    """
    text = (residence_type or '').lower()
    if 'portiek' in text:
        return 'portiek'
    if 'galerij' in text or 'gallerij' in text:
        return 'gallerij'
    return 'grondgebonden'


def _parse_prices_per_type(raw: Any) -> Optional[Dict[str, Optional[float]]]:
    if not isinstance(raw, Mapping):
        return None
    prices = {key: parse_number(raw.get(key)) for key in RESIDENCE_TYPES}
    # Older records spell the ground-level type without the d
    if prices['grondgebonden'] is None:
        prices['grondgebonden'] = parse_number(raw.get('grongebonden'))
    return prices


@dataclass
class PriceLineItem:
    """One billable component of a measure: a quantity formula and a unit price."""
    name: str = "Unnamed"
    unit: str = DEFAULT_UNIT
    calculation: List[CalculationToken] = field(default_factory=list)
    price: Optional[float] = None
    prices_per_type: Optional[Dict[str, Optional[float]]] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "PriceLineItem":
        return cls(**cls._common_fields(raw))

    @staticmethod
    def _common_fields(raw: Any) -> Dict[str, Any]:
        # Unusable records still become an item, so the line reports as invalid
        if not isinstance(raw, Mapping):
            return {'error': f"Ongeldige prijsregel: {raw!r}"}

        name = str(raw.get('name') or "Unnamed")
        calculation = raw.get('calculation')
        fields = {
            'name': name,
            'unit': raw.get('unit') or DEFAULT_UNIT,
            'calculation': parse_formula(calculation),
            'price': parse_number(raw.get('price')),
            'prices_per_type': _parse_prices_per_type(raw.get('pricesPerType')),
        }
        if calculation is not None and not isinstance(calculation, (list, tuple)):
            fields['error'] = f"Ongeldige berekening voor {name}: {calculation!r}"
        return fields


@dataclass
class MaintenanceLineItem(PriceLineItem):
    """A maintenance job: a price line that recurs every ``cycle`` years."""
    cycle_start: float = 0.0
    cycle: float = 0.0

    @classmethod
    def from_dict(cls, raw: Any) -> "MaintenanceLineItem":
        fields = cls._common_fields(raw)
        if not isinstance(raw, Mapping):
            return cls(**fields)
        fields['cycle_start'] = parse_number(raw.get('cycleStart')) or 0.0
        fields['cycle'] = parse_number(raw.get('cycle')) or 0.0
        return cls(**fields)


@dataclass
class LineResult:
    name: str
    unit_price: float
    quantity: float
    total_price: float
    unit: str
    steps: List[Step] = field(default_factory=list)
    is_valid: bool = True
    error: Optional[str] = None
    variable_warnings: List[str] = field(default_factory=list)
    per_type_price: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'unitPrice': self.unit_price,
            'quantity': self.quantity,
            'totalPrice': self.total_price,
            'unit': self.unit,
            'steps': [step.to_dict() for step in self.steps],
            'isValid': self.is_valid,
        }
        if self.error:
            data['error'] = self.error
            data['variableWarnings'] = list(self.variable_warnings)
        return data


@dataclass
class AggregateResult:
    price: float = 0.0
    calculations: List[LineResult] = field(default_factory=list)
    is_valid: bool = False
    error_message: Optional[str] = None
    warning_log: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'price': self.price,
            'calculations': [line.to_dict() for line in self.calculations],
            'isValid': self.is_valid,
            'errorMessage': self.error_message,
            'warningLog': list(self.warning_log),
        }


PriceItemLike = Union[PriceLineItem, Mapping[str, Any]]


def as_price_item(raw: PriceItemLike, maintenance: bool = False) -> PriceLineItem:
    """Accept either a parsed item or a stored record."""
    if isinstance(raw, PriceLineItem):
        return raw
    item_cls = MaintenanceLineItem if maintenance else PriceLineItem
    return item_cls.from_dict(raw)



def _invalid_line(name: str, unit: str, message: str, unit_price: float = 0.0, steps=None) -> LineResult:
    return LineResult(
        name=name,
        unit_price=unit_price,
        quantity=0.0,
        total_price=0.0,
        unit=unit,
        steps=list(steps or []),
        is_valid=False,
        error=message,
        variable_warnings=[message],
    )


class PriceLineCalculator:
    """Computes price lines from formulas, unit prices and a calculation context.

    Holds no state between calls: results depend only on the arguments, so one
    calculator can price any number of measures.
    """

    def __init__(self, resolver: Optional[VariableResolver] = None):
        self.resolver = resolver or VariableResolver()

    def unit_price(self, item: PriceLineItem, residence_type: str, split_prices: bool) -> float:
        """Select the flat price or the price for the residence type."""
        fallback = item.price if item.price is not None else 0.0

        if not split_prices or not item.prices_per_type:
            return fallback

        per_type = item.prices_per_type.get(residence_type_key(residence_type))
        return per_type if per_type is not None else fallback

    def calculate_line(
        self,
        item: PriceItemLike,
        context: Mapping[str, Any],
        residence_type: str = '',
        split_prices: bool = False,
    ) -> LineResult:
        """Evaluate one price line.

        Args:
            item: Price line (parsed or stored record)
            context: Calculation context of the residence
            residence_type: Free-text residence type, used for split pricing
            split_prices: Whether per-type prices apply

        Returns:
            LineResult; invalid lines carry a zero quantity and total
        """
        name, unit = "Unnamed", DEFAULT_UNIT
        try:
            parsed = as_price_item(item)
            name, unit = parsed.name, parsed.unit
            if parsed.error:
                logger.warning(f"Price line '{name}' could not be parsed: {parsed.error}")
                return _invalid_line(name, unit, f"Fout in berekening: {parsed.error}")

            evaluation: Evaluation = evaluate(parsed.calculation, context, self.resolver)
            unit_price = self.unit_price(parsed, residence_type, split_prices)
        except Exception as exc:
            logger.exception(f"Unexpected error while calculating '{name}'")
            return _invalid_line(name, unit, f"Fout in berekening: {exc}")

        if not evaluation.ok:
            logger.warning(f"Price line '{name}' is invalid: {evaluation.error}")
            return _invalid_line(name, unit, evaluation.error, unit_price, evaluation.steps)

        quantity = evaluation.value
        return LineResult(
            name=name,
            unit_price=unit_price,
            quantity=quantity,
            total_price=quantity * unit_price,
            unit=unit,
            steps=evaluation.steps,
            per_type_price=bool(split_prices and parsed.prices_per_type),
        )

    def calculate_lines(
        self,
        items: Optional[Iterable[PriceItemLike]],
        context: Optional[Mapping[str, Any]],
        residence_type: str = '',
        split_prices: bool = False,
    ) -> AggregateResult:
        """Evaluate all price lines of a measure and sum the valid ones."""
        items = list(items or [])
        if not items or context is None:
            return AggregateResult(
                price=0.0,
                calculations=[],
                is_valid=False,
                error_message=EMPTY_INPUT_MESSAGE,
                warning_log=[],
            )

        results = [
            self.calculate_line(item, context, residence_type, split_prices)
            for item in items
        ]

        errors = [line.error for line in results if not line.is_valid and line.error]
        warning_log: List[str] = []
        for line in results:
            warning_log.extend(line.variable_warnings)

        return AggregateResult(
            price=sum(line.total_price for line in results if line.is_valid),
            calculations=results,
            is_valid=all(line.is_valid for line in results),
            error_message="; ".join(errors) if errors else None,
            warning_log=warning_log,
        )


def summary_notes(results: Iterable[AggregateResult]) -> str:
    """Human-readable count of evaluated and failed lines for logging."""
    lines = [line for result in results for line in result.calculations]
    failed = sum(1 for line in lines if not line.is_valid)
    per_type = sum(1 for line in lines if line.per_type_price)

    pieces = [f"{len(lines)} price lines evaluated."]

    if failed:
        pieces.append(f"{failed} lines could not be calculated.")

    if per_type:
        pieces.append(f"Per-type prices used for {per_type} lines.")

    return " ".join(pieces)


def calculate_measure_price(
    measure_prices: Optional[Iterable[PriceItemLike]],
    calculation_data: Optional[Mapping[str, Any]],
    residence_type: str = '',
    split_prices: bool = False,
) -> AggregateResult:
    """Calculate the price of a measure from its price lines.

    Called once for ``measure_prices`` (investment) and once for
    ``mjob_prices`` (maintenance, price per occurrence) of each measure.
    """
    return PriceLineCalculator().calculate_lines(
        measure_prices, calculation_data, residence_type, split_prices
    )
