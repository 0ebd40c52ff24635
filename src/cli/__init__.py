"""Command-line interface: ``ledger``."""
