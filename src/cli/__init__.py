"""Command-line interface: optstruct positions | marks | health."""
