"""vms command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``vms`` script).
"""

from vms.cli.main import cli

__all__ = ["cli"]
