#!/usr/bin/env python3
"""A CLI for the tadoasync library."""

import sys

try:
    from tado_cli.client import main

except ModuleNotFoundError:
    from pathlib import Path

    sys.path.append(str(Path(__file__).parent / "src"))

    from tado_cli.client import main

if __name__ == "__main__":
    main()
