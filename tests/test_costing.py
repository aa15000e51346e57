"""Tests for price line costing and measure price aggregation."""

from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).parent.parent))

from retrofit_costs.modeling.costing import (
    EMPTY_INPUT_MESSAGE,
    MaintenanceLineItem,
    PriceLineCalculator,
    PriceLineItem,
    calculate_measure_price,
    residence_type_key,
    summary_notes,
)


@pytest.fixture
def context():
    return {
        'woningSpecifiek': {'breedte': 5.4, 'diepte': 9.0, 'aantalWoningen': 4},
        'dakOppervlak': 48.6,
        'gevelOppervlakNetto': 30.0,
    }


def price_line(name, variables, price=None, operator='*', **extra):
    calculation = []
    for index, variable in enumerate(variables):
        if index:
            calculation.append({'type': 'operator', 'value': operator})
        calculation.append({'type': 'variable', 'value': variable})
    line = {'name': name, 'unit': 'm²', 'calculation': calculation}
    if price is not None:
        line['price'] = price
    line.update(extra)
    return line


def test_line_total_is_quantity_times_unit_price(context):
    line = PriceLineCalculator().calculate_line(
        price_line('Dakisolatie', ['dakOppervlak', 'AantalWoningen'], price=25.0), context
    )

    assert line.is_valid
    assert line.quantity == pytest.approx(48.6 * 4)
    assert line.unit_price == 25.0
    assert line.total_price == pytest.approx(48.6 * 4 * 25.0)
    assert [step.variable for step in line.steps] == ['dakOppervlak', 'AantalWoningen']


def test_split_prices_select_by_residence_type(context):
    item = price_line(
        'Gevelisolatie', ['gevelOppervlakNetto'], price=5.0,
        pricesPerType={'grondgebonden': 10, 'portiek': 20, 'gallerij': 30},
    )
    calculator = PriceLineCalculator()

    assert calculator.calculate_line(item, context, 'Portiekflat', True).unit_price == 20
    assert calculator.calculate_line(item, context, 'Galerijflat', True).unit_price == 30
    assert calculator.calculate_line(item, context, 'gallerijwoning', True).unit_price == 30
    assert calculator.calculate_line(item, context, 'Eengezinswoning', True).unit_price == 10


def test_flat_price_used_without_split_pricing(context):
    item = price_line(
        'Gevelisolatie', ['gevelOppervlakNetto'], price=5.0,
        pricesPerType={'grondgebonden': 10, 'portiek': 20, 'gallerij': 30},
    )

    line = PriceLineCalculator().calculate_line(item, context, 'Portiekflat', False)

    assert line.unit_price == 5.0
    assert line.total_price == pytest.approx(150.0)


def test_missing_per_type_price_falls_back_to_flat_price(context):
    item = price_line('Kozijnen', ['gevelOppervlakNetto'], price=7.0, pricesPerType={'grondgebonden': 10})

    assert PriceLineCalculator().unit_price(PriceLineItem.from_dict(item), 'portiek', True) == 7.0


def test_missing_prices_default_to_zero(context):
    line = PriceLineCalculator().calculate_line(price_line('Onbekend', ['dakOppervlak']), context)

    assert line.is_valid
    assert line.unit_price == 0
    assert line.total_price == 0


def test_missing_variable_isolated_to_its_line(context):
    items = [
        price_line('Dak', ['dakOppervlak'], price=10.0),
        price_line('Vloer', ['vloerOppervlakOnbekend'], price=10.0),
    ]

    result = calculate_measure_price(items, context, 'grondgebonden', False)

    assert result.is_valid is False
    assert result.price == pytest.approx(486.0)
    assert result.calculations[0].is_valid
    assert result.calculations[1].is_valid is False
    assert result.calculations[1].total_price == 0
    assert result.calculations[1].quantity == 0
    assert "vloerOppervlakOnbekend" in result.error_message
    assert result.warning_log == [result.calculations[1].error]


def test_error_messages_joined_with_semicolon(context):
    items = [
        price_line('A', ['x'], price=1.0),
        price_line('B', ['10', 'nul'], price=1.0, operator='/'),
    ]
    context = dict(context, nul=0)

    result = calculate_measure_price(items, context)

    assert result.error_message == "Variabele x niet gevonden in berekeningen; Deling door nul bij nul"
    assert len(result.warning_log) == 2


def test_division_by_zero_never_reaches_total(context):
    result = calculate_measure_price(
        [price_line('Deling', ['10', '0'], price=3.0, operator='/')], context
    )

    assert result.is_valid is False
    assert result.price == 0
    assert 'nul' in result.error_message


@pytest.mark.parametrize('items, data', [
    (None, {'a': 1}),
    ([], {'a': 1}),
    ([{'name': 'x', 'calculation': []}], None),
])
def test_empty_input_returns_nothing_to_compute(items, data):
    result = calculate_measure_price(items, data, 'portiek', True)

    assert result.is_valid is False
    assert result.price == 0
    assert result.calculations == []
    assert result.error_message == EMPTY_INPUT_MESSAGE


def test_repeated_calls_give_identical_results(context):
    items = [
        price_line('Dak', ['dakOppervlak', 'AantalWoningen'], price=12.5),
        price_line('Gevel', ['gevelOppervlakNetto'], pricesPerType={'portiek': 8}, price=1.0),
    ]

    first = calculate_measure_price(items, context, 'Portiek', True)
    second = calculate_measure_price(items, context, 'Portiek', True)

    assert first.to_dict() == second.to_dict()


def test_unexpected_errors_are_contained(context, monkeypatch):
    calculator = PriceLineCalculator()

    def broken(*_args, **_kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(calculator, 'unit_price', broken)
    result = calculator.calculate_lines([price_line('Dak', ['dakOppervlak'], price=1.0)], context)

    assert result.is_valid is False
    assert result.calculations[0].error == "Fout in berekening: boom"


def test_maintenance_item_parses_cycle_metadata():
    item = MaintenanceLineItem.from_dict({
        'name': 'Schilderwerk',
        'calculation': [{'type': 'variable', 'value': 'kozijnOmtrekTotaal'}],
        'price': '12,50',
        'cycleStart': 5,
        'cycle': 7,
    })

    assert item.price == 12.5
    assert item.cycle_start == 5
    assert item.cycle == 7
    assert item.unit == 'm²'


def test_legacy_ground_level_price_key():
    item = PriceLineItem.from_dict({'name': 'x', 'pricesPerType': {'grongebonden': 11}})

    assert item.prices_per_type['grondgebonden'] == 11


@pytest.mark.parametrize('residence_type, expected', [
    ('Portiekflat', 'portiek'),
    ('GALERIJFLAT', 'gallerij'),
    ('Gallerij', 'gallerij'),
    ('Tussenwoning', 'grondgebonden'),
    (None, 'grondgebonden'),
])
def test_residence_type_key(residence_type, expected):
    assert residence_type_key(residence_type) == expected


def test_summary_notes_mention_failures(context):
    result = PriceLineCalculator().calculate_lines([price_line('A', ['missing'], price=1.0)], context)

    notes = summary_notes([result])

    assert "1 price lines evaluated." in notes
    assert "1 lines could not be calculated." in notes


def test_summary_notes_count_per_type_prices(context):
    item = price_line('Gevel', ['gevelOppervlakNetto'], price=1.0, pricesPerType={'portiek': 8})

    result = calculate_measure_price([item, item], context, 'Portiek', True)

    assert "Per-type prices used for 2 lines." in summary_notes([result])


def test_missing_record_becomes_invalid_line(context):
    items = [price_line('Dak', ['dakOppervlak'], price=10.0), None]

    result = calculate_measure_price(items, context)

    assert result.is_valid is False
    assert result.price == pytest.approx(486.0)
    assert result.calculations[1].name == "Unnamed"
    assert result.calculations[1].is_valid is False
    assert result.calculations[1].error.startswith("Fout in berekening")


@pytest.mark.parametrize('calculation', [5, 'dakOppervlak', {'type': 'variable', 'value': 'dakOppervlak'}])
def test_calculation_that_is_not_a_list_is_rejected(context, calculation):
    result = calculate_measure_price([{'name': 'x', 'calculation': calculation, 'price': 1}], context)

    assert result.is_valid is False
    assert result.price == 0
    assert result.calculations[0].name == 'x'
    assert "Ongeldige berekening" in result.error_message


def test_malformed_maintenance_record_parses_without_cycle():
    item = MaintenanceLineItem.from_dict("Schilderwerk")

    assert item.name == "Unnamed"
    assert item.cycle == 0
    assert item.error is not None
