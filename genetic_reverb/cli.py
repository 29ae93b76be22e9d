"""
CLI module for genetic reverb synthesis.

Handles run configuration loading, validation, and mode dispatching.
"""

from typing import Dict, Any, Optional
from pathlib import Path
import math
import yaml

from .data_models import (
    FitnessWeights,
    GAConfig,
    InvalidConfigurationError,
    TargetDescriptors,
    DESCRIPTOR_NAMES,
)
from .rendering import QUALITY_PROFILES, get_quality_profile, ir_length_for


MODES = ['synthesize', 'stereo', 'analyze']


class ConfigValidationError(Exception):
    """Raised when run configuration is invalid."""
    pass


def load_run_config(config_path: str) -> Dict[str, Any]:
    """
    Load run configuration from YAML file.

    Args:
        config_path: Path to run configuration YAML file

    Returns:
        Dictionary containing run configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigValidationError: If config is invalid
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in configuration file: {e}")

    if config is None:
        raise ConfigValidationError("Configuration file is empty")

    return config


def validate_run_config(config: Dict[str, Any]) -> None:
    """
    Validate run configuration structure.

    Args:
        config: Run configuration dictionary

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    if 'mode' not in config:
        raise ConfigValidationError("Missing required field: 'mode'")

    mode = config['mode']
    if mode not in MODES:
        raise ConfigValidationError(
            f"Invalid mode: '{mode}'. Must be one of {MODES}"
        )

    if 'output' not in config:
        raise ConfigValidationError("Missing required field: 'output'")

    if not isinstance(config['output'], dict):
        raise ConfigValidationError("'output' must be a dictionary")

    if 'root' not in config['output']:
        raise ConfigValidationError("Missing required field: 'output.root'")

    if mode == 'analyze':
        _validate_analyze_config(config)
    else:
        _validate_synthesis_config(config)


def _validate_analyze_config(config: Dict[str, Any]) -> None:
    """
    Validate analyze mode configuration.

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    input_config = config.get('input')
    if not isinstance(input_config, dict) or 'impulse_response' not in input_config:
        raise ConfigValidationError("Analyze mode requires 'input.impulse_response' field")

    ir_path = Path(input_config['impulse_response'])
    if not ir_path.exists():
        raise ConfigValidationError(f"Impulse response file not found: {ir_path}")

    _validate_positive(config.get('ir', {}), 'sample_rate', 'ir', required=True)


def _validate_synthesis_config(config: Dict[str, Any]) -> None:
    """
    Validate synthesize/stereo mode configuration.

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    for section in ['target', 'ga', 'ir']:
        if section not in config:
            raise ConfigValidationError(f"Missing required field: '{section}'")
        if not isinstance(config[section], dict):
            raise ConfigValidationError(f"'{section}' must be a dictionary")

    target = config['target']
    for name in ['t60', 'itdg', 'edt', 'c80']:
        if name not in target:
            raise ConfigValidationError(f"Missing required field: 'target.{name}'")
        if not isinstance(target[name], (int, float)):
            raise ConfigValidationError(f"'target.{name}' must be a number, got: {target[name]}")
    _validate_positive(target, 't60', 'target', required=True)

    weights = config.get('weights', {}) or {}
    unknown = set(weights) - set(DESCRIPTOR_NAMES)
    if unknown:
        raise ConfigValidationError(f"Unknown fitness weights: {sorted(unknown)}")
    try:
        FitnessWeights.from_dict(weights)
    except (InvalidConfigurationError, TypeError, ValueError) as e:
        raise ConfigValidationError(f"Invalid fitness weights: {e}")

    ga = config['ga']
    quality = ga.get('quality')
    if quality is not None and str(quality).lower() not in QUALITY_PROFILES:
        raise ConfigValidationError(
            f"Invalid quality: '{quality}'. Must be one of {sorted(QUALITY_PROFILES)}"
        )

    ir = config['ir']
    _validate_positive(ir, 'sample_rate', 'ir', required=True)
    if 'num_samples' in ir:
        num_samples = ir['num_samples']
        if not isinstance(num_samples, int) or num_samples < 2:
            raise ConfigValidationError(
                f"'ir.num_samples' must be an integer of at least 2, got: {num_samples}"
            )
    else:
        _validate_positive(ir, 'length_factor', 'ir', required=False)

    if config['mode'] == 'stereo':
        stereo = config.get('stereo')
        if not isinstance(stereo, dict):
            raise ConfigValidationError("Stereo mode requires a 'stereo' dictionary")
        _validate_positive(stereo, 'host_sample_rate', 'stereo', required=True)
        for key in ['left_delay_ms', 'right_delay_ms']:
            value = stereo.get(key, 0)
            if not isinstance(value, (int, float)) or value < 0:
                raise ConfigValidationError(
                    f"'stereo.{key}' must be a non-negative number, got: {value}"
                )

    try:
        build_ga_config(config)
    except (InvalidConfigurationError, TypeError) as e:
        raise ConfigValidationError(f"Invalid GA configuration: {e}")


def _validate_positive(section: Dict[str, Any], key: str, section_name: str, required: bool) -> None:
    if key not in section:
        if required:
            raise ConfigValidationError(f"Missing required field: '{section_name}.{key}'")
        return
    value = section[key]
    if not isinstance(value, (int, float)) or value <= 0:
        raise ConfigValidationError(
            f"'{section_name}.{key}' must be a positive number, got: {value}"
        )


def build_target(config: Dict[str, Any]) -> TargetDescriptors:
    """TargetDescriptors from the 'target' section."""
    target = config['target']
    return TargetDescriptors(
        t60=float(target['t60']),
        itdg=float(target['itdg']),
        edt=float(target['edt']),
        c80=float(target['c80']),
        br=float(target['br']) if target.get('br') is not None else None,
    )


def build_weights(config: Dict[str, Any]) -> FitnessWeights:
    """FitnessWeights from the optional 'weights' section."""
    return FitnessWeights.from_dict(config.get('weights'))


def build_ga_config(config: Dict[str, Any], quality: Optional[str] = None) -> GAConfig:
    """
    GAConfig from the 'ga' section.

    A 'quality' entry (or the `quality` argument) selects a preset; any
    other keys in the section override preset values.

    Raises:
        InvalidConfigurationError: If the resulting configuration is invalid
    """
    ga = dict(config.get('ga', {}))
    quality = quality or ga.pop('quality', None)
    ga.pop('quality', None)

    if quality is not None:
        params = get_quality_profile(quality).to_dict()
        params.update(ga)
    else:
        params = ga

    ga_config = GAConfig.from_dict(params)
    ga_config.validate()
    return ga_config


def resolve_num_samples(config: Dict[str, Any]) -> int:
    """IR length: explicit 'ir.num_samples' or round(length_factor x T60 x fs)."""
    ir = config['ir']
    if 'num_samples' in ir:
        return int(ir['num_samples'])
    factor = ir.get('length_factor', 1.1)
    return int(round(factor * float(config['target']['t60']) * float(ir['sample_rate'])))


def run_from_config(config_path: str, overrides: Optional[Dict[str, Any]] = None) -> None:
    """
    Load run configuration and execute appropriate mode.

    This is the main entry point called by main.py.

    Args:
        config_path: Path to run configuration YAML file
        overrides: Top-level entries replacing those from the file
            (e.g. random_seed, output root, quality)

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigValidationError: If config is invalid
        Various exceptions from mode implementations
    """
    print(f"Loading configuration from: {config_path}")
    config = load_run_config(config_path)
    apply_overrides(config, overrides or {})

    print(f"Validating configuration...")
    validate_run_config(config)

    mode = config['mode']
    print(f"Mode: {mode}\n")

    if mode == 'synthesize':
        from .orchestration import run_synthesize_mode
        run_synthesize_mode(config)
    elif mode == 'stereo':
        from .orchestration import run_stereo_mode
        run_stereo_mode(config)
    elif mode == 'analyze':
        from .orchestration import run_analyze_mode
        run_analyze_mode(config)
    else:
        # Should never reach here due to validation
        raise ConfigValidationError(f"Invalid mode: {mode}")

    print("\nRun completed successfully!")


def apply_overrides(config: Dict[str, Any], overrides: Dict[str, Any]) -> None:
    """Merge command-line overrides into a loaded run configuration."""
    if overrides.get('random_seed') is not None:
        config['random_seed'] = overrides['random_seed']
    if overrides.get('output_root') is not None:
        config.setdefault('output', {})['root'] = overrides['output_root']
    if overrides.get('overwrite'):
        config.setdefault('output', {})['overwrite'] = True
    if overrides.get('quality') is not None:
        config.setdefault('ga', {})['quality'] = overrides['quality']
    if overrides.get('plots') is False:
        config.setdefault('output', {})['plots'] = False


def format_value(value: Optional[float], unit: str = '') -> str:
    """Human-readable descriptor value, including infinities."""
    if value is None:
        return '-'
    if math.isnan(value):
        return 'nan'
    if math.isinf(value):
        return '+inf' if value > 0 else '-inf'
    return f"{value:.4f}{unit}"
