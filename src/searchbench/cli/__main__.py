"""
CLI entry point for searchbench.

This module serves as the entry point when searchbench.cli is executed as a
module with `python -m searchbench.cli`.
"""

from .main import cli

if __name__ == "__main__":
    cli()
