"""
Utility modules for vaultdash.

This subpackage contains shared utilities used across vaultdash:

Modules:
    - paths: Filesystem path resolution for logs and scratch files
    - applog: Append-only application logger

Purpose:
    These utilities are separated from the CLI and TUI so that:
    - The dashboard can log without touching the terminal it owns
    - Path and logging logic stays centralized and testable
"""
