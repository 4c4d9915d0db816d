"""
HYDROGRID Command-Line Interface entry point.

Provides the main() function behind the ``hydrogrid`` console script. It
parses the arguments, dispatches to the command handler and maps failures
to exit codes.
"""


def main(argv=None):
    """
    Main entry point for the HYDROGRID CLI.

    Returns:
        0 on success, 1 on configuration or data errors, 130 on interrupt
    """
    import sys

    from hydrogrid.cli.argument_parser import CLIParser
    from hydrogrid.core.exceptions import HydroGridError

    try:
        parser = CLIParser()
        args = parser.parse_args(argv)

        if hasattr(args, 'func'):
            return int(args.func(args))
        else:
            parser.parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except (HydroGridError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    import sys
    sys.exit(main())
