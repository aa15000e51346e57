"""
Cost calculation for a residence and a selection of retrofit measures.

Loads the measures and the residence's calculation context, prices every
measure, projects maintenance over 40 years and writes the cost overview.
"""

import argparse
from pathlib import Path
from loguru import logger
import sys
import yaml

# Add project root to path
sys.path.append(str(Path(__file__).parent))

from config.config import DATA_OUTPUTS_DIR, get_calculation_settings, get_energy_params, get_maintenance_params
from retrofit_costs.analysis.heat_demand import co2_reduction, label_improvement
from retrofit_costs.modeling.aggregate import AggregateCalculator
from retrofit_costs.modeling.budget import calculate_budget_breakdown
from retrofit_costs.modeling.formula import VariableResolver, parse_number
from retrofit_costs.modeling.maintenance import MaintenanceAmortizer
from retrofit_costs.modeling.settings import CalculationSettings
from retrofit_costs.reporting.cost_report import CostReporter
from retrofit_costs.utils.calculation_logger import CalculationLogger


def setup_logging(log_file: Path = None, verbose: bool = False):
    """
    Configure logging for the calculation run.

    Args:
        log_file: Optional path to log file
        verbose: Log debug messages to the console as well
    """
    logger.remove()  # Remove default handler

    # Console logging
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="DEBUG" if verbose else "INFO"
    )

    # File logging
    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
            level="DEBUG",
            rotation="10 MB"
        )


def load_document(path: Path):
    """Read a YAML or JSON document (JSON is valid YAML)."""
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def load_measures(path: Path) -> list:
    document = load_document(path)
    if isinstance(document, dict):
        document = document.get('measures', [])
    if not isinstance(document, list):
        raise ValueError(f"Expected a list of measures in {path}")
    return document


def load_context(path: Path) -> dict:
    document = load_document(path)
    if not isinstance(document, dict):
        raise ValueError(f"Expected a mapping of calculation variables in {path}")
    return document


def number_of_units(context: dict) -> int:
    value = VariableResolver().resolve('aantalWoningen', context)
    number = parse_number(value)
    return int(number) if number else 0


def run(args) -> int:
    output_dir = Path(args.output)
    run_log = CalculationLogger(output_dir=output_dir)
    run_log.set_metadata('residence_type', args.residence_type)
    run_log.set_metadata('build_period', args.build_period)
    run_log.set_metadata('split_prices', args.split_prices)

    logger.info("=" * 70)
    logger.info("PHASE 1: LOAD INPUTS")
    logger.info("=" * 70)
    run_log.start_phase("Load inputs", "Read measures, calculation context and settings")

    measures = load_measures(Path(args.measures))
    context = load_context(Path(args.context))
    settings = CalculationSettings.from_mapping(get_calculation_settings())
    energy = get_energy_params()
    horizon_years = get_maintenance_params()['horizon_years']

    run_log.add_metric('measures', len(measures), "Measures selected")
    run_log.add_metric('inflation_percentage', settings.inflationPercentage)
    run_log.add_metric('horizon_years', horizon_years, "Maintenance horizon")
    run_log.complete_phase(success=True)

    logger.info("\n" + "=" * 70)
    logger.info("PHASE 2: PRICE MEASURES")
    logger.info("=" * 70)
    run_log.start_phase("Price measures", "Evaluate price formulas and project maintenance")

    calculator = AggregateCalculator(settings, amortizer=MaintenanceAmortizer(horizon_years))
    summary = calculator.calculate_project(
        measures,
        context,
        residence_type=args.residence_type,
        build_period=args.build_period,
        split_prices=args.split_prices,
    )
    budget = calculate_budget_breakdown(summary.total_investment, settings, number_of_units(context))

    run_log.add_metric('total_investment', summary.total_investment, "Direct costs of valid measures")
    run_log.add_metric('final_amount', budget.final_amount, "Budget incl. markups and VAT")
    run_log.add_metric('maintenance_40_years', summary.maintenance_40_years, f"Maintenance over {horizon_years} years")
    run_log.add_metric('invalid_measures', summary.invalid_measures)
    run_log.complete_phase(success=not summary.invalid_measures, message="; ".join(summary.warnings))

    logger.info("\n" + "=" * 70)
    logger.info("PHASE 3: ENERGY LABEL")
    logger.info("=" * 70)

    label = None
    if args.current_energy_use is None:
        run_log.skip_phase("Energy label", "No current energy use given")
    else:
        run_log.start_phase("Energy label", "Estimate the label after the heat-demand reduction")
        label = label_improvement(
            args.current_energy_use,
            summary.total_heat_demand,
            energy['label_thresholds'],
        )
        run_log.add_metric('total_heat_demand', summary.total_heat_demand)
        run_log.add_metric('co2_reduction', co2_reduction(summary.total_heat_demand, energy['co2_factor']))
        run_log.add_metric('steps_improved', label.steps_improved, f"{label.current_label} -> {label.new_label}")
        run_log.complete_phase(success=True)

    logger.info("\n" + "=" * 70)
    logger.info("PHASE 4: REPORTING")
    logger.info("=" * 70)
    run_log.start_phase("Reporting", "Write measure table and cost overview")

    reporter = CostReporter(outputs_dir=output_dir)
    reporter.generate(summary, budget, label)
    run_log.add_output(output_dir / "measure_summary.csv", "csv", "One row per measure")
    run_log.add_output(output_dir / "summary.md", "report", "Cost overview")
    run_log.complete_phase(success=True)
    run_log.save()

    logger.info(f"✓ Investment: € {summary.total_investment:,.2f} (incl. VAT € {budget.final_amount:,.2f})")
    logger.info(f"✓ TCO ({horizon_years} years): € {summary.total_cost_of_ownership:,.2f}")
    if label is not None:
        logger.info(f"✓ Energy label: {label.current_label} -> {label.new_label}")

    return 0 if not summary.invalid_measures else 1


def main():
    parser = argparse.ArgumentParser(
        description="Retrofit measure cost calculation"
    )
    parser.add_argument('--measures', required=True, help="YAML/JSON file with the selected measures")
    parser.add_argument('--context', required=True, help="YAML/JSON file with the calculation context")
    parser.add_argument('--residence-type', default='grondgebonden', help="Residence type, e.g. Portiekflat")
    parser.add_argument('--build-period', default='', help="Construction period, e.g. 1965-1974")
    parser.add_argument('--split-prices', action='store_true', help="Use per residence type prices")
    parser.add_argument('--current-energy-use', type=float, default=None,
                        help="Current energy use (kWh/m2) for the energy label estimate")
    parser.add_argument('--output', default=str(DATA_OUTPUTS_DIR), help="Output directory")
    parser.add_argument('--log-file', type=Path, default=None, help="Optional log file")
    parser.add_argument('--verbose', action='store_true', help="Show debug logging")

    args = parser.parse_args()
    setup_logging(args.log_file, args.verbose)

    try:
        return run(args)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Calculation failed: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
