"""Human-readable explanations of calculated price lines (Dutch number formatting)."""

from typing import Optional

from retrofit_costs.modeling.costing import LineResult, MaintenanceLineItem
from retrofit_costs.modeling.maintenance import yearly_job_cost

DWELLING_COUNT_VARIABLES = {'aantalWoningen', 'AantalWoningen'}
OPERATOR_SYMBOLS = {'*': '×', '/': '÷', '+': '+', '-': '-'}


def format_nl_number(value: float, decimals: int = 2) -> str:
    formatted = f"{value:,.{decimals}f}"
    return formatted.replace(",", "X").replace(".", ",").replace("X", ".")


def format_eur(value: float, decimals: int = 2) -> str:
    return f"€ {format_nl_number(value, decimals)}"


def explain_line(line: LineResult) -> str:
    """Explain a price line as ``(2,00 woningen × 10,00 = 20,00 m² × €5,00)``."""
    quantity = f"{format_nl_number(line.quantity)} {line.unit} × €{format_nl_number(line.unit_price)}"

    if not line.steps:
        return f"({quantity})"

    parts = []
    for index, step in enumerate(line.steps):
        operation = f" {OPERATOR_SYMBOLS.get(step.operation, step.operation)} " if index > 0 else ''
        unit = ' woningen' if step.variable in DWELLING_COUNT_VARIABLES else ''
        parts.append(f"{operation}{format_nl_number(step.value)}{unit}")

    return f"({''.join(parts)} = {quantity})"


def explain_maintenance(line: LineResult, meta: Optional[MaintenanceLineItem]) -> str:
    """Explain the recurrence of a maintenance job.

    E.g. ``€ 100,00 elke 10 jaar (€ 10,00 per jaar)``.
    """
    if meta is None or meta.cycle <= 0:
        return f"{format_eur(line.total_price)} (geen cyclus)"
    per_year = format_eur(yearly_job_cost(line, meta))
    return f"{format_eur(line.total_price)} elke {meta.cycle:g} jaar ({per_year} per jaar)"
