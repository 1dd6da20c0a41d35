#!/usr/bin/env python
"""
Thin wrapper script to invoke the commit_gatekeeper CLI.

Running ``python gatekeep.py`` is equivalent to running the
``gatekeep`` console script installed via ``pyproject.toml``.
"""

from commit_gatekeeper.cli import main


if __name__ == "__main__":
    main(prog_name="gatekeep")
