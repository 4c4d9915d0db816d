"""Command-line interface for HYDROGRID."""

from .argument_parser import CLIParser

__all__ = ['CLIParser']
