#!/usr/bin/env python3
"""
Genetic Reverb - evolutionary impulse response synthesis

Main entry point. All run settings live in a YAML run configuration;
command-line flags override the most common ones.

Usage:
    python3 main.py                         # Run config.yaml
    python3 main.py --config examples/stereo_run.yaml
    python3 main.py --quality high --seed 7
    python3 main.py --analyze output/run/ir.npy --sample-rate 16000
"""

import sys
import argparse
import logging
from pathlib import Path

# Add current directory to path for imports
sys.path.append(str(Path(__file__).parent))


def run_analysis(ir_path: str, sample_rate: float) -> None:
    """Print the descriptors of a saved impulse response"""
    from genetic_reverb.orchestration import run_analyze_mode

    run_analyze_mode({
        'mode': 'analyze',
        'input': {'impulse_response': ir_path},
        'ir': {'sample_rate': sample_rate},
    })


def main():
    """Main entry point with command-line argument parsing"""
    parser = argparse.ArgumentParser(
        description="Genetic Reverb - evolutionary impulse response synthesis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 main.py                               # Synthesize with config.yaml
  python3 main.py --config custom.yaml          # Custom run configuration
  python3 main.py --quality max --seed 42       # Override GA preset and seed
  python3 main.py --output-root output/room_v1  # Custom output directory
  python3 main.py --analyze ir.npy              # Measure an existing IR
        """
    )

    parser.add_argument(
        '--config', '-c',
        default='config.yaml',
        help='Run configuration file path (default: config.yaml)'
    )

    parser.add_argument(
        '--quality', '-q',
        choices=['low', 'medium', 'high', 'max'],
        help='GA quality preset (overrides ga.quality)'
    )

    parser.add_argument(
        '--seed', '-s',
        type=int,
        help='Random seed (overrides random_seed)'
    )

    parser.add_argument(
        '--output-root', '-o',
        metavar='DIR',
        help='Output directory (overrides output.root)'
    )

    parser.add_argument(
        '--overwrite',
        action='store_true',
        help='Allow writing into an existing output directory'
    )

    parser.add_argument(
        '--no-plots',
        action='store_true',
        help='Skip the PNG plot'
    )

    parser.add_argument(
        '--analyze', '-a',
        metavar='IR_PATH',
        help='Analyze a saved impulse response (.npy) instead of synthesizing'
    )

    parser.add_argument(
        '--sample-rate',
        type=float,
        default=16000,
        help='Sample rate for --analyze (default: 16000)'
    )

    parser.add_argument(
        '--log-level',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level for library messages (default: WARNING)'
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        if args.analyze:
            run_analysis(args.analyze, args.sample_rate)
        else:
            from genetic_reverb.cli import run_from_config
            run_from_config(args.config, overrides={
                'random_seed': args.seed,
                'output_root': args.output_root,
                'overwrite': args.overwrite,
                'quality': args.quality,
                'plots': False if args.no_plots else None,
            })

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
