"""
Entry point for running vaultdash as a Python module.

This module enables the package to be executed directly via:
    python -m vaultdash <logfile> [<logfile> ...]
"""

from .cli import main

if __name__ == "__main__":
    main()
