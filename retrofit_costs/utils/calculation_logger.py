"""
Calculation Logger - Records the phases of a cost calculation run as a JSON log
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import json

import numpy as np
from loguru import logger


def convert_to_json_serializable(obj: Any) -> Any:
    """Recursively convert numpy scalars/arrays and paths to plain JSON types."""
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, dict):
        return {key: convert_to_json_serializable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [convert_to_json_serializable(item) for item in obj]
    return obj


@dataclass
class PhaseRecord:
    number: int
    name: str
    description: str = ""
    started: datetime = field(default_factory=datetime.now)
    duration_seconds: float = 0.0
    status: str = 'in_progress'
    message: str = ""
    metrics: Dict[str, Any] = field(default_factory=dict)
    outputs: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['started'] = self.started.isoformat()
        return data


class CalculationLogger:
    """
    Run log of one calculation: phases (load inputs, price measures, energy
    label, reporting) with their status, metrics and written outputs.
    """

    def __init__(self, output_dir: Path = None):
        if output_dir is None:
            from config.config import DATA_OUTPUTS_DIR
            output_dir = DATA_OUTPUTS_DIR

        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.phases: List[PhaseRecord] = []
        self.current: Optional[PhaseRecord] = None
        self.metadata: Dict[str, Any] = {'calculation_start': datetime.now().isoformat()}

    def set_metadata(self, key: str, value: Any):
        self.metadata[key] = value

    def start_phase(self, name: str, description: str = ""):
        if self.current is not None:
            self.complete_phase(message="Auto-completed")

        self.current = PhaseRecord(number=len(self.phases) + 1, name=name, description=description)
        logger.info(f"Starting phase {self.current.number}: {name}")

    def add_metric(self, key: str, value: Any, description: str = ""):
        """Add a metric (e.g. ``total_investment``) to the current phase."""
        if self.current is None:
            logger.warning(f"Cannot add metric '{key}' - no active phase")
            return
        self.current.metrics[key] = {'value': value, 'description': description}

    def add_output(self, output_path, output_type: str = "file", description: str = ""):
        if self.current is None:
            logger.warning(f"Cannot add output '{output_path}' - no active phase")
            return
        self.current.outputs.append({'path': str(output_path), 'type': output_type, 'description': description})

    def complete_phase(self, success: bool = True, message: str = ""):
        if self.current is None:
            logger.warning("Cannot complete phase - no active phase")
            return

        phase, self.current = self.current, None
        phase.duration_seconds = (datetime.now() - phase.started).total_seconds()
        phase.status = 'completed' if success else 'failed'
        phase.message = message
        self.phases.append(phase)

        logger.info(f"{'✓' if success else '✗'} Phase {phase.number} {phase.status}: {phase.name}")

    def skip_phase(self, name: str, reason: str = ""):
        """Record a phase that did not apply to this run."""
        self.phases.append(PhaseRecord(
            number=len(self.phases) + 1, name=name, status='skipped', message=reason,
        ))
        logger.info(f"⊘ Phase skipped: {name} - {reason}")

    def save(self, filename: str = "calculation_log.json") -> Path:
        """Write metadata, phases and a status count; returns the log path."""
        if self.current is not None:
            self.complete_phase(message="Auto-completed at save")

        statuses = [phase.status for phase in self.phases]
        payload = {
            'metadata': self.metadata,
            'phases': [phase.to_dict() for phase in self.phases],
            'summary': {
                'total_phases': len(self.phases),
                'successful': statuses.count('completed'),
                'failed': statuses.count('failed'),
                'skipped': statuses.count('skipped'),
            },
        }

        log_path = self.output_dir / filename
        with open(log_path, 'w', encoding='utf-8') as f:
            json.dump(convert_to_json_serializable(payload), f, indent=2, ensure_ascii=False)

        logger.info(f"Calculation log saved to {log_path}")
        return log_path
