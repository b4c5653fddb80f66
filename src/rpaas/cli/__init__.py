"""Command-line tooling for rpaas instances."""
