"""Command-line interface for scaffolddb."""
