"""Command-line interface for zxytiles."""
