"""Command line interface for the PurpleAir exporter; the Typer app lives in ``cli.app``."""
