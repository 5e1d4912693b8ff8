"""
vaultdash - Terminal dashboard for SAFE vault logfiles.

This package tails one or more vault logfiles, shows their most recent
lines and summarizes what the vaults report: version, start time, age
bracket and network counts.

Package Structure:
    - cli.py: Command-line interface and entry point
    - tui/: The dashboard components
    - utils/: Shared utilities for paths and logging

Usage:
    Run as a module: python -m vaultdash <logfile> [<logfile> ...]

Example:
    python -m vaultdash ~/.safe/vault/local-vault.log --tick-rate 250
"""
