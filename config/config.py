"""
Configuration loader for the retrofit measure cost engine.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Mapping, Optional

# Get project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# Define paths
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"
DATA_OUTPUTS_DIR = DATA_DIR / "outputs"

# Used when config.yaml does not define a settings block (or leaves keys out)
DEFAULT_SETTINGS: Dict[str, float] = {
    'hourlyLaborCost': 51,
    'vatPercentage': 21,
    'inflationPercentage': 1,
    'cornerHouseCorrection': -10,
    'abkMaterieel': 5,
    'afkoop': 2,
    'kostenPlanuitwerking': 3,
    'nazorgService': 1.5,
    'carPiDicVerzekering': 1,
    'bankgarantie': 0.5,
    'algemeneKosten': 8,
    'risico': 2,
    'winst': 5,
    'planvoorbereiding': 3,
    'huurdersbegeleiding': 2,
}


def load_config(config_file: str = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_file: Name of the configuration file

    Returns:
        Dictionary containing configuration parameters
    """
    config_path = CONFIG_DIR / config_file

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)

    return config or {}


def merge_settings(stored: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge stored settings over the defaults and validate numeric fields.

    Non-numeric entries that are not defaults (names of custom fields, the
    ``customFields`` list) are passed through untouched.
    """
    merged: Dict[str, Any] = dict(DEFAULT_SETTINGS)
    merged.update(dict(stored or {}))

    for key in DEFAULT_SETTINGS:
        value = merged.get(key)
        if value is None:
            merged[key] = DEFAULT_SETTINGS[key]
            continue
        try:
            merged[key] = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Setting '{key}' must be numeric, got {value!r}.") from exc

    return merged


def get_calculation_settings() -> Dict[str, Any]:
    """Get calculation settings (labour cost, inflation, VAT, markups) from config."""
    config = load_config()
    return merge_settings(config.get('settings', {}))


def get_maintenance_params() -> Dict[str, Any]:
    """Get maintenance projection parameters from config."""
    config = load_config()
    maintenance = config.get('maintenance', {})

    horizon = maintenance.get('horizon_years', 40)
    try:
        horizon_value = int(horizon)
    except (TypeError, ValueError) as exc:
        raise ValueError("Maintenance horizon must be a whole number of years.") from exc

    if horizon_value <= 0:
        raise ValueError("Maintenance horizon must be greater than zero.")

    maintenance['horizon_years'] = horizon_value
    return maintenance


def get_energy_params() -> Dict[str, Any]:
    """Get energy label thresholds and the CO2 factor from config."""
    config = load_config()
    energy = config.get('energy', {})

    return {
        'co2_factor': float(energy.get('co2_factor', 0.21)),
        'label_thresholds': energy.get('label_thresholds') or None,
    }


if __name__ == "__main__":
    # Test configuration loading
    config = load_config()
    print("Configuration loaded successfully!")
    print(f"Project: {config['project']['name']}")
    print(f"Inflation: {get_calculation_settings()['inflationPercentage']}%")
