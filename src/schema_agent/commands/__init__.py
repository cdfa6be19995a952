"""Command implementations shared by the CLI and watch mode."""
