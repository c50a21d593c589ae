"""
CLI layer for redeploy.

Provides a Typer application whose commands delegate to
:mod:`redeploy.deploy`. This package handles only terminal transport:
argument parsing, coloured output, and table formatting.

Entry point::

    redeploy --help
"""

from redeploy.cli.app import app

__all__ = ["app"]
