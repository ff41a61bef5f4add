"""CLI module for the mock Identity Provider."""
