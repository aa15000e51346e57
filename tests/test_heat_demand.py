"""Tests for heat-demand lookup and energy label estimates."""

from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).parent.parent))

from retrofit_costs.analysis.heat_demand import (
    co2_reduction,
    determine_energy_label,
    heat_demand_value,
    label_improvement,
)


MEASURE = {
    'name': 'Spouwmuurisolatie',
    'heat_demand': {
        'grondgebonden': [{'period': 'tot 1965', 'value': 30}, {'period': '1965-1974', 'value': 25}],
        'portiek': [{'period': '1965-1974', 'value': 18}],
        'gallerij': [],
    },
}


def test_lookup_by_type_and_period():
    assert heat_demand_value(MEASURE, 'Portiekflat', '1965-1974') == 18
    assert heat_demand_value(MEASURE, 'eengezinswoning', 'tot 1965') == 30


def test_missing_values_default_to_zero():
    assert heat_demand_value(MEASURE, 'Galerijflat', '1965-1974') == 0
    assert heat_demand_value(MEASURE, 'Portiek', '1983-1987') == 0
    assert heat_demand_value({'name': 'Zonder'}, 'Portiek', '1965-1974') == 0


@pytest.mark.parametrize('energy_use, label', [
    (-10, 'A++++'),
    (0, 'A++++'),
    (49.9, 'A++++'),
    (50, 'A+++'),
    (160, 'A'),
    (189, 'A'),
    (250, 'C'),
    (379, 'E'),
    (380, 'F'),
    (999, 'F'),
    (1000, 'G'),
    (2500, 'G'),
])
def test_energy_label_thresholds(energy_use, label):
    assert determine_energy_label(energy_use) == label


def test_label_improvement():
    improvement = label_improvement(300, 60)

    assert improvement.current_label == 'D'
    assert improvement.new_label == 'B'
    assert improvement.new_energy_use == 240
    assert improvement.steps_improved == 2


def test_co2_reduction_factor():
    assert co2_reduction(100) == pytest.approx(21)
    assert co2_reduction(100, factor=0.5) == 50
