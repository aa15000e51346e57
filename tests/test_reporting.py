"""Tests for line explanations and cost report outputs."""

from pathlib import Path
import sys

import pandas as pd

sys.path.append(str(Path(__file__).parent.parent))

from retrofit_costs.analysis.heat_demand import label_improvement
from retrofit_costs.modeling.aggregate import AggregateCalculator
from retrofit_costs.modeling.budget import calculate_budget_breakdown
from retrofit_costs.modeling.costing import LineResult, MaintenanceLineItem, PriceLineCalculator
from retrofit_costs.modeling.maintenance import MaintenanceAmortizer
from retrofit_costs.reporting.cost_report import CostReporter
from retrofit_costs.reporting.explanations import (
    explain_line,
    explain_maintenance,
    format_nl_number,
)


def _measures():
    return [
        {
            'name': 'Gevelisolatie',
            'measure_prices': [{
                'name': 'Isolatie',
                'calculation': [
                    {'type': 'variable', 'value': 'aantalWoningen'},
                    {'type': 'operator', 'value': '*'},
                    {'type': 'variable', 'value': 'gevelOppervlakNetto'},
                ],
                'price': 5,
            }],
            'mjob_prices': [{
                'name': 'Reinigen',
                'unit': 'st',
                'calculation': [{'type': 'variable', 'value': 'aantalWoningen'}],
                'price': 100,
                'cycleStart': 0,
                'cycle': 10,
            }],
            'heat_demand': {'grondgebonden': [{'period': 'tot 1965', 'value': 40}]},
        },
        {
            'name': 'Vloerisolatie',
            'measure_prices': [{
                'name': 'Vloer',
                'calculation': [{'type': 'variable', 'value': 'ontbreekt'}],
                'price': 10,
            }],
        },
    ]


def test_format_nl_number():
    assert format_nl_number(1234.5) == "1.234,50"
    assert format_nl_number(0.456, 1) == "0,5"


def test_explain_line_uses_steps():
    line = PriceLineCalculator().calculate_line(
        _measures()[0]['measure_prices'][0],
        {'aantalWoningen': 2, 'gevelOppervlakNetto': 10},
    )

    assert explain_line(line) == "(2,00 woningen × 10,00 = 20,00 m² × €5,00)"


def test_explain_line_without_steps():
    line = LineResult(name='Vast', unit_price=3, quantity=4, total_price=12, unit='st')

    assert explain_line(line) == "(4,00 st × €3,00)"


def test_explain_maintenance():
    line = LineResult(name='Reinigen', unit_price=100, quantity=1, total_price=100, unit='st')

    assert explain_maintenance(line, MaintenanceLineItem(name='Reinigen', cycle=10)) == (
        "€ 100,00 elke 10 jaar (€ 10,00 per jaar)"
    )
    assert explain_maintenance(line, None) == "€ 100,00 (geen cyclus)"


def test_report_outputs_written(tmp_path):
    context = {'aantalWoningen': 2, 'gevelOppervlakNetto': 10}
    summary = AggregateCalculator().calculate_project(_measures(), context, 'grondgebonden', 'tot 1965')
    budget = calculate_budget_breakdown(summary.total_investment, number_of_units=2)
    label = label_improvement(200, summary.total_heat_demand)

    table = CostReporter(outputs_dir=tmp_path).generate(summary, budget, label)

    csv_path = tmp_path / 'measure_summary.csv'
    markdown_path = tmp_path / 'summary.md'
    assert csv_path.exists()
    assert markdown_path.exists()
    assert len(pd.read_csv(csv_path)) == len(table) == 2

    markdown = markdown_path.read_text(encoding='utf-8')
    assert "### Vloerisolatie (onvolledig)" in markdown
    assert "Variabele ontbreekt niet gevonden" in markdown
    assert "€ 200,00 elke 10 jaar" in markdown
    assert "Energielabel: B → A" in markdown


def test_report_uses_configured_horizon(tmp_path):
    calculator = AggregateCalculator(amortizer=MaintenanceAmortizer(horizon_years=30))
    summary = calculator.calculate_project(_measures()[:1], {'aantalWoningen': 2, 'gevelOppervlakNetto': 10})

    markdown = CostReporter(outputs_dir=tmp_path).summary_markdown(summary)

    assert "- Onderhoudskosten 30 jaar:" in markdown
    assert "- TCO (30 jaar):" in markdown
    assert "40 jaar" not in markdown
