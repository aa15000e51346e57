"""
Formula evaluation for measure price lines.

A formula is an ordered list of variable and operator tokens authored in the
admin screens, e.g. ``breedte * hoogte - kozijnOppervlakTotaal``. Variables are
resolved against a residence's calculation context and the expression is
evaluated with standard precedence (``*``/``/`` before ``+``/``-``).
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from loguru import logger


OPERATORS = ('+', '-', '*', '/')

# Historical variable names used by formulas authored before the context was
# renamed. Numeric entries are literal constants.
LEGACY_VARIABLE_ALIASES: Dict[str, Union[str, float]] = {
    'AantalWoningen': 'aantalWoningen',
    'Dakoppervlak': 'dakOppervlak',
    'LengteDakvlak': 'dakLengte',
    'BreedteWoning': 'breedte',
    'NettoGevelOppervlak': 'gevelOppervlakNetto',
    'VloerOppervlakteBeganeGrond': 'vloerOppervlak',
    'OmtrekKozijnen': 'kozijnOmtrekTotaal',
    'GevelOppervlak': 'gevelOppervlakTotaal',
    '5%': 0.05,
}

RESIDENCE_NAMESPACE = 'woningSpecifiek'
DIMENSIONS_NAMESPACE = 'dimensions'


@dataclass(frozen=True)
class VariableToken:
    value: str


@dataclass(frozen=True)
class OperatorToken:
    value: str


CalculationToken = Union[VariableToken, OperatorToken]

# Internal representation after variable resolution
_Resolved = Tuple[str, Any]


class EvaluationError(str, Enum):
    MISSING_VARIABLE = 'missing_variable'
    NON_NUMERIC_VARIABLE = 'non_numeric_variable'
    DIVISION_BY_ZERO = 'division_by_zero'


@dataclass
class Step:
    """One operand of a formula with its resolved value and the running result."""
    variable: str
    value: float
    operation: str
    current_result: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'variable': self.variable,
            'value': self.value,
            'operation': self.operation,
            'currentResult': self.current_result,
        }


@dataclass
class Evaluation:
    value: float = 0.0
    steps: List[Step] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[EvaluationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_token(raw: Any) -> Optional[CalculationToken]:
    """Convert a stored ``{type, value}`` record into a token.

    Returns None for records that cannot form a token (missing type or value,
    unknown type, unknown operator symbol). Already-parsed tokens pass through.
    """
    if isinstance(raw, (VariableToken, OperatorToken)):
        return raw
    if not isinstance(raw, Mapping):
        return None

    token_type = raw.get('type')
    value = raw.get('value')
    if not token_type or value is None or value == '':
        return None

    if token_type == 'operator':
        symbol = str(value).strip()
        if symbol in ('x', '×'):
            symbol = '*'
        elif symbol == '÷':
            symbol = '/'
        if symbol not in OPERATORS:
            return None
        return OperatorToken(symbol)

    if token_type == 'variable':
        return VariableToken(str(value).strip())

    return None


def parse_formula(raw_tokens: Optional[Iterable[Any]]) -> List[CalculationToken]:
    """Parse a stored calculation list, dropping malformed entries."""
    tokens: List[CalculationToken] = []
    if raw_tokens is not None and (
        isinstance(raw_tokens, (str, bytes, Mapping)) or not isinstance(raw_tokens, Iterable)
    ):
        logger.debug(f"Calculation is not a list: {raw_tokens!r}")
        return tokens
    for raw in raw_tokens or []:
        token = parse_token(raw)
        if token is None:
            logger.debug(f"Skipping malformed formula token: {raw!r}")
            continue
        tokens.append(token)
    return tokens


def parse_number(value: Any) -> Optional[float]:
    """Coerce a context value to a finite float, or None if it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if ',' in text and '.' not in text:
            text = text.replace(',', '.')
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    return number


class VariableResolver:
    """Looks up formula variables in a calculation context.

    Resolution order, first match wins:

    1. the ``woningSpecifiek`` namespace
    2. the top level of the context
    3. the legacy alias table (literal constants, or a renamed variable looked
       up in ``woningSpecifiek`` and then the top level)
    4. the lowercased name in the ``dimensions`` namespace
    5. the name itself as a numeric literal

    The resolver holds no per-context state and can be shared between threads.
    """

    def __init__(self, aliases: Optional[Mapping[str, Union[str, float]]] = None):
        self.aliases = dict(LEGACY_VARIABLE_ALIASES if aliases is None else aliases)

    def resolve(self, name: str, context: Mapping[str, Any]) -> Any:
        nested = context.get(RESIDENCE_NAMESPACE)
        if isinstance(nested, Mapping) and nested.get(name) is not None:
            return nested[name]

        if context.get(name) is not None:
            return context[name]

        alias = self.aliases.get(name)
        if isinstance(alias, numbers.Real):
            return alias
        if alias:
            if isinstance(nested, Mapping) and nested.get(alias) is not None:
                return nested[alias]
            if context.get(alias) is not None:
                return context[alias]

        dimensions = context.get(DIMENSIONS_NAMESPACE)
        lowered = name.lower()
        if isinstance(dimensions, Mapping) and dimensions.get(lowered) is not None:
            return dimensions[lowered]

        return parse_number(name)


def evaluate_values(tokens: List[_Resolved]) -> float:
    """Fold resolved ``('value', x)`` / ``('operator', op)`` tokens.

    The first pass folds ``*`` and ``/`` into their left operand as soon as the
    right operand arrives; the second pass folds ``+`` and ``-`` left to right.
    Operators without an operand on both sides are carried along and have no
    effect on the result.
    """
    if not tokens:
        return 0.0

    reduced: List[_Resolved] = []
    if tokens[0][0] != 'value':
        # Leading operator: act as if the formula started with 0
        reduced.append(('value', 0.0))

    for kind, item in tokens:
        if (
            kind == 'value'
            and len(reduced) >= 2
            and reduced[-1][0] == 'operator'
            and reduced[-1][1] in ('*', '/')
            and reduced[-2][0] == 'value'
        ):
            operator = reduced.pop()[1]
            left = reduced.pop()[1]
            folded = left * item if operator == '*' else left / item
            reduced.append(('value', folded))
        else:
            reduced.append((kind, item))

    result = reduced[0][1]
    pending = '+'
    for kind, item in reduced[1:]:
        if kind == 'operator':
            if item in ('+', '-'):
                pending = item
            continue
        result = result - item if pending == '-' else result + item
        pending = '+'

    return float(result)


def evaluate(
    tokens: Iterable[Any],
    context: Mapping[str, Any],
    resolver: Optional[VariableResolver] = None,
) -> Evaluation:
    """Evaluate a formula against a calculation context.

    Args:
        tokens: Parsed tokens or raw ``{type, value}`` records
        context: Calculation context for one residence
        resolver: Variable resolver, a default one is used when omitted

    Returns:
        Evaluation with the value, the audit trail of steps and, when a
        variable is missing, non-numeric or a zero divisor, an error message.
    """
    resolver = resolver or VariableResolver()
    resolved: List[_Resolved] = []
    steps: List[Step] = []
    last_operator = '+'

    for token in parse_formula(tokens):
        if isinstance(token, OperatorToken):
            last_operator = token.value
            resolved.append(('operator', token.value))
            continue

        raw_value = resolver.resolve(token.value, context)
        if raw_value is None:
            return Evaluation(
                steps=steps,
                error=f"Variabele {token.value} niet gevonden in berekeningen",
                error_kind=EvaluationError.MISSING_VARIABLE,
            )

        number = parse_number(raw_value)
        if number is None:
            return Evaluation(
                steps=steps,
                error=f"Waarde voor {token.value} ({raw_value}) is geen getal",
                error_kind=EvaluationError.NON_NUMERIC_VARIABLE,
            )

        previous = resolved[-1] if resolved else None
        if previous is not None and previous[0] == 'value':
            # Two operands in a row: join them with the last operator seen
            resolved.append(('operator', last_operator))
            previous = resolved[-1]

        if previous == ('operator', '/') and number == 0:
            return Evaluation(
                steps=steps,
                error=f"Deling door nul bij {token.value}",
                error_kind=EvaluationError.DIVISION_BY_ZERO,
            )

        operation = previous[1] if previous is not None else '+'
        resolved.append(('value', number))
        steps.append(Step(
            variable=token.value,
            value=number,
            operation=operation,
            current_result=evaluate_values(resolved),
        ))

    return Evaluation(value=evaluate_values(resolved), steps=steps)
