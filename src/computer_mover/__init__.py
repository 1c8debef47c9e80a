"""
Computer Mover - A CLI tool for relocating Active Directory computer accounts.

This package provides functionality to:
- Select computers by name, from a list file (text or XLSX), or from a source OU
- Deduplicate the selection case-insensitively and validate it against the directory
- Record each computer's current OU for auditing
- Move the computers into a destination OU, isolating per-computer failures
- Generate CSV or HTML before/after reports of the run
"""

__version__ = "0.1.0"
__author__ = "Computer Mover Team"
