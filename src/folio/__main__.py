"""CLI entrypoint for running folio as a module."""

from folio.cli import cli
from folio.logging import setup_logging

if __name__ == "__main__":
    setup_logging()
    cli()
