#!/usr/bin/env python3
"""
terragrunt-nav - Main entry point.

Runs the command line host.
"""

import sys

from terragrunt_nav.main import main


if __name__ == "__main__":
    sys.exit(main())
