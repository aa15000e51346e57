"""
Cost report outputs.

Writes the per-measure summary table (CSV) and a markdown overview with the
price line explanations, maintenance projection, budget and energy label.
"""

from pathlib import Path
from typing import List, Optional

import pandas as pd
from loguru import logger

from config.config import DATA_OUTPUTS_DIR
from retrofit_costs.analysis.heat_demand import LabelImprovement
from retrofit_costs.modeling.aggregate import ProjectSummary, to_frame
from retrofit_costs.modeling.budget import BudgetBreakdown
from retrofit_costs.reporting.explanations import explain_line, explain_maintenance, format_eur, format_nl_number


class CostReporter:
    """Generate report artefacts for one residence calculation."""

    def __init__(self, outputs_dir: Optional[Path] = None):
        self.outputs_dir = Path(outputs_dir or DATA_OUTPUTS_DIR)
        self.outputs_dir.mkdir(parents=True, exist_ok=True)

    def summary_markdown(
        self,
        summary: ProjectSummary,
        budget: Optional[BudgetBreakdown] = None,
        label: Optional[LabelImprovement] = None,
    ) -> str:
        lines: List[str] = ["# Kostenoverzicht", ""]

        lines.append("## Resultaten")
        lines.append("")
        lines.append(f"- Investering (directe kosten): {format_eur(summary.total_investment)}")
        if budget is not None:
            lines.append(f"- Totaal incl. BTW: {format_eur(budget.final_amount)}")
            lines.append(f"- Totaal excl. BTW: {format_eur(budget.total_excl_vat)}")
        lines.append(f"- Onderhoudskosten per jaar: {format_eur(summary.maintenance_per_year)}")
        lines.append(f"- Onderhoudskosten {summary.horizon_years} jaar: {format_eur(summary.maintenance_40_years)}")
        lines.append(f"- TCO ({summary.horizon_years} jaar): {format_eur(summary.total_cost_of_ownership)}")
        lines.append(f"- Warmtebehoefte: {format_nl_number(summary.total_heat_demand, 1)}")
        if summary.highest_nuisance > 0:
            lines.append(f"- Hinder indicator: {format_nl_number(summary.highest_nuisance, 1)}")
        if label is not None:
            lines.append(f"- Energielabel: {label.current_label} → {label.new_label}")
        lines.append("")

        lines.append("## Maatregelen")
        for result in summary.measures:
            lines.append("")
            status = "" if result.is_valid else " (onvolledig)"
            lines.append(f"### {result.name}{status}")
            lines.append("")
            for line in result.investment.calculations:
                if line.is_valid:
                    lines.append(f"- {line.name}: {format_eur(line.total_price)} {explain_line(line)}")
                else:
                    lines.append(f"- {line.name}: ⚠ {line.error}")

            maintenance_lines = result.maintenance.calculations
            if maintenance_lines:
                lines.append("")
                lines.append("Onderhoud:")
                jobs = {job.name: job for job in result.jobs}
                for line in maintenance_lines:
                    lines.append(f"- {line.name}: {explain_maintenance(line, jobs.get(line.name))}")
                lines.append(
                    f"- Totaal over {summary.horizon_years} jaar: {format_eur(result.projection.total_40_years)} "
                    f"({format_eur(result.projection.per_year)} p.j.)"
                )

        if summary.warnings:
            lines.append("")
            lines.append("## Waarschuwingen")
            lines.append("")
            lines.extend(f"- {message}" for message in summary.warnings)

        return "\n".join(lines) + "\n"

    def generate(
        self,
        summary: ProjectSummary,
        budget: Optional[BudgetBreakdown] = None,
        label: Optional[LabelImprovement] = None,
    ) -> pd.DataFrame:
        """Write ``measure_summary.csv`` and ``summary.md`` and return the table."""
        table = to_frame(summary)

        csv_path = self.outputs_dir / "measure_summary.csv"
        table.to_csv(csv_path, index=False)
        logger.info(f"Saved measure summary to {csv_path}")

        markdown_path = self.outputs_dir / "summary.md"
        markdown_path.write_text(self.summary_markdown(summary, budget, label), encoding='utf-8')
        logger.info(f"Saved cost overview to {markdown_path}")

        return table
