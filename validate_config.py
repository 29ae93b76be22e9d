#!/usr/bin/env python3
"""
Configuration Validation Tool

Validates YAML run configurations for genetic reverb synthesis and
provides detailed feedback about parameter values and potential issues.
"""

import sys
import argparse
import math
from pathlib import Path
from typing import Dict, Any

# Add current directory to path for imports
sys.path.append(str(Path(__file__).parent))

from genetic_reverb.cli import (
    ConfigValidationError,
    build_ga_config,
    load_run_config,
    resolve_num_samples,
    validate_run_config,
)
from genetic_reverb.rendering import buffer_length_tier


class ConfigValidator:
    """Run configuration validator with detailed feedback"""

    def __init__(self):
        self.warnings = []
        self.errors = []
        self.recommendations = []

    def validate_comprehensive(self, config_path: str) -> Dict[str, Any]:
        """Perform comprehensive validation with detailed feedback"""
        try:
            config = load_run_config(config_path)
        except (FileNotFoundError, ConfigValidationError) as e:
            return {
                'valid': False,
                'errors': [f"Failed to load configuration: {e}"],
                'warnings': [],
                'recommendations': [],
                'summary': {}
            }

        self.warnings = []
        self.errors = []
        self.recommendations = []

        # Structural validation
        try:
            validate_run_config(config)
        except ConfigValidationError as e:
            self.errors.append(str(e))

        if not self.errors and config['mode'] != 'analyze':
            self._validate_target(config['target'])
            self._validate_ga(config)
            self._validate_ir(config)
            self._validate_performance(config)

        summary = self._generate_summary(config) if not self.errors else {}

        return {
            'valid': len(self.errors) == 0,
            'errors': self.errors,
            'warnings': self.warnings,
            'recommendations': self.recommendations,
            'summary': summary
        }

    def _validate_target(self, target: Dict[str, Any]):
        """Check target descriptors for values the analyzer can reach"""
        t60 = target['t60']
        edt = target['edt']
        itdg = target['itdg']
        c80 = target['c80']

        if t60 > 10:
            self.warnings.append(f"Very long T60 ({t60}s) produces large individuals")
        elif t60 < 0.1:
            self.warnings.append(f"Very short T60 ({t60}s) leaves few samples for the decay analysis")

        if edt <= 0:
            self.errors.append("target.edt must be positive")
        elif edt > t60:
            self.warnings.append(f"EDT ({edt}s) longer than T60 ({t60}s) is physically unusual")

        if itdg < 0:
            self.errors.append("target.itdg must be non-negative")
        elif itdg > 0.5:
            self.warnings.append(f"Large ITDG ({itdg}s) is hard to reach from decaying noise")

        if abs(c80) > 20:
            self.warnings.append(f"Extreme clarity target ({c80} dB)")

        if c80 == 0:
            self.recommendations.append("C80 target of 0 dB is scored with absolute instead of relative error")

    def _validate_ga(self, config: Dict[str, Any]):
        """Check GA parameters beyond hard limits"""
        ga_config = build_ga_config(config)

        if ga_config.plateau_length is None:
            self.recommendations.append(
                "No plateau_length set; runs always use the full generation budget unless they converge"
            )

        if ga_config.mutation_rate > 0.1:
            self.warnings.append(
                f"High mutation_rate ({ga_config.mutation_rate}) perturbs elites heavily every generation"
            )

        if ga_config.selection_size > ga_config.population_size * 0.75:
            self.warnings.append(
                f"Large elite set ({ga_config.selection_size}/{ga_config.population_size}) leaves few children per generation"
            )

        if ga_config.noise_threshold is not None and ga_config.noise_threshold < 1e-9:
            self.warnings.append(
                f"Tiny noise_threshold ({ga_config.noise_threshold}) will often exhaust crossover retries"
            )

    def _validate_ir(self, config: Dict[str, Any]):
        """Check IR dimensions"""
        num_samples = resolve_num_samples(config)
        sample_rate = config['ir']['sample_rate']
        t60 = config['target']['t60']

        if num_samples < t60 * sample_rate:
            self.warnings.append(
                f"IR length ({num_samples} samples) is shorter than the target T60; "
                f"the -35 dB point may never be reached"
            )

        if sample_rate < 4000:
            self.errors.append(f"ir.sample_rate ({sample_rate} Hz) too low to measure the 500-2000 Hz band")

    def _validate_performance(self, config: Dict[str, Any]):
        """Estimate run cost"""
        ga_config = build_ga_config(config)
        num_samples = resolve_num_samples(config)
        evaluations = ga_config.population_size * (ga_config.num_generations + 1)
        work = evaluations * num_samples

        if work > 5e8:
            self.warnings.append(f"Run may be slow: up to {evaluations} evaluations of {num_samples} samples")
            if ga_config.workers == 1:
                self.recommendations.append("Set ga.workers > 1 to evaluate the population in parallel")

    def _generate_summary(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Generate configuration summary"""
        summary = {'mode': {'name': config['mode']}}

        if config['mode'] == 'analyze':
            summary['input'] = {'impulse_response': config['input']['impulse_response']}
            return summary

        ga_config = build_ga_config(config)
        num_samples = resolve_num_samples(config)
        sample_rate = config['ir']['sample_rate']

        summary['target'] = dict(config['target'])
        summary['ga'] = {
            'population': ga_config.population_size,
            'elite': ga_config.selection_size,
            'generations': ga_config.num_generations,
            'plateau': ga_config.plateau_length,
            'max_evaluations': ga_config.population_size * (ga_config.num_generations + 1),
        }
        summary['ir'] = {
            'num_samples': num_samples,
            'duration': f"{num_samples / sample_rate:.3f}s",
        }

        if config['mode'] == 'stereo':
            host_rate = config['stereo']['host_sample_rate']
            host_length = math.ceil(num_samples * host_rate / sample_rate)
            summary['stereo'] = {
                'host_sample_rate': host_rate,
                'buffer_length': buffer_length_tier(host_length),
            }

        return summary


def main():
    """Main validation function"""
    parser = argparse.ArgumentParser(
        description="Validate genetic reverb run configuration files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 validate_config.py config.yaml
  python3 validate_config.py examples/stereo_run.yaml --verbose
        """
    )

    parser.add_argument(
        'config_file',
        nargs='?',
        default='config.yaml',
        help='Configuration file to validate (default: config.yaml)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show detailed validation information'
    )

    parser.add_argument(
        '--warnings-only', '-w',
        action='store_true',
        help='Show only warnings and errors (no recommendations)'
    )

    args = parser.parse_args()

    validator = ConfigValidator()
    result = validator.validate_comprehensive(args.config_file)

    print("=" * 60)
    print("CONFIGURATION VALIDATION REPORT")
    print("=" * 60)
    print(f"File: {args.config_file}")
    print(f"Status: {'VALID' if result['valid'] else 'INVALID'}")
    print()

    if result['errors']:
        print("ERRORS:")
        for error in result['errors']:
            print(f"  - {error}")
        print()

    if result['warnings']:
        print("WARNINGS:")
        for warning in result['warnings']:
            print(f"  - {warning}")
        print()

    if result['recommendations'] and not args.warnings_only:
        print("RECOMMENDATIONS:")
        for rec in result['recommendations']:
            print(f"  - {rec}")
        print()

    if result['summary'] and args.verbose:
        print("SUMMARY:")
        for section, data in result['summary'].items():
            print(f"  {section.title()}:")
            for key, value in data.items():
                print(f"    {key}: {value}")
        print()

    # Quick stats
    if not args.verbose:
        summary = result['summary']
        if 'ga' in summary and 'ir' in summary:
            print(f"Evaluations: up to {summary['ga']['max_evaluations']}, "
                  f"IR: {summary['ir']['num_samples']} samples ({summary['ir']['duration']})")

    print("=" * 60)

    sys.exit(0 if result['valid'] else 1)


if __name__ == "__main__":
    main()
