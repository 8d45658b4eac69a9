#!/usr/bin/env python3
"""
Entry point for maya CLI tool.
"""

import sys

from maya_storage.cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
