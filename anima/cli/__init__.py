"""Command-line host for anima."""
