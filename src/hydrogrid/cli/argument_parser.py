"""
HYDROGRID CLI Argument Parser.

Provides the command-line parser with one subcommand per action:

    - run: Execute the complete grid search
    - merge: Merge existing partial result files into the final file
    - space: Report the size of the configured parameter space
"""

import argparse
from typing import List, Optional

try:
    from hydrogrid.hydrogrid_version import __version__
except ImportError:
    __version__ = "0+unknown"


class CLIParser:
    """
    Main CLI parser.

    Attributes:
        common_parser: Parent parser with global options (--config, --debug)
        parser: Main argument parser with all subcommands registered
    """

    def __init__(self):
        self.common_parser = self._create_common_parser()
        self.parser = self._create_parser()

    def _create_common_parser(self) -> argparse.ArgumentParser:
        """Create a parent parser with common arguments."""
        # SUPPRESS keeps subcommand defaults from overwriting global flags
        parser = argparse.ArgumentParser(add_help=False, argument_default=argparse.SUPPRESS)
        parser.add_argument('--config', type=str,
                            help='Path to a YAML configuration file')
        parser.add_argument('--debug', action='store_true',
                            help='Enable debug output')
        return parser

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog='hydrogrid',
            description='HYDROGRID - Brute-force calibration of a lagged river level model',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            parents=[self.common_parser],
            epilog="""
Examples:
  hydrogrid run --config hydrogrid.yaml
  hydrogrid run --workers 8 --chunk-size 500 --seed 42
  hydrogrid merge --results-dir ./resultados_parciales
  hydrogrid space --config hydrogrid.yaml
"""
        )
        parser.add_argument('--version', action='version',
                            version=f'HYDROGRID {__version__}')

        subparsers = parser.add_subparsers(
            dest='command',
            required=True,
            help='Command',
            metavar='<command>'
        )

        self._register_run_command(subparsers)
        self._register_merge_command(subparsers)
        self._register_space_command(subparsers)
        return parser

    def _add_output_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument('--results-dir', type=str, dest='results_dir',
                            help='Directory for partial result files')
        parser.add_argument('--final-file', type=str, dest='final_file',
                            help='Path of the merged result file')

    def _register_run_command(self, subparsers):
        from .commands import GridSearchCommands

        run_parser = subparsers.add_parser(
            'run',
            help='Run the complete grid search',
            parents=[self.common_parser]
        )
        run_parser.add_argument('--workers', type=int, dest='workers',
                                help='Number of worker processes')
        run_parser.add_argument('--chunk-size', type=int, dest='chunk_size',
                                help='Parameter sets per dispatched chunk')
        run_parser.add_argument('--seed', type=int, dest='seed',
                                help='Seed for the wind coefficient draws')
        run_parser.add_argument('--data-dir', type=str, dest='data_dir',
                                help='Directory holding the input CSV files')
        self._add_output_arguments(run_parser)
        run_parser.set_defaults(func=GridSearchCommands.run)

    def _register_merge_command(self, subparsers):
        from .commands import GridSearchCommands

        merge_parser = subparsers.add_parser(
            'merge',
            help='Merge partial result files into the final file',
            parents=[self.common_parser]
        )
        self._add_output_arguments(merge_parser)
        merge_parser.set_defaults(func=GridSearchCommands.merge)

    def _register_space_command(self, subparsers):
        from .commands import GridSearchCommands

        space_parser = subparsers.add_parser(
            'space',
            help='Print the size of the parameter space',
            parents=[self.common_parser]
        )
        space_parser.set_defaults(func=GridSearchCommands.space)

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        return self.parser.parse_args(args)
