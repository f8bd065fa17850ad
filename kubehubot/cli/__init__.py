"""kubehubot command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kubehubot`` script).
"""

from kubehubot.cli.main import cli

__all__ = ["cli"]
