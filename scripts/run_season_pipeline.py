#!/usr/bin/env python3
"""Rainy season pipeline runner.

Usage:
    python scripts/run_season_pipeline.py scripts/user_config.py
    python scripts/run_season_pipeline.py scripts/user_config.py --n-workers 8
    python scripts/run_season_pipeline.py scripts/user_config.py --mode climatology

Note: User config in scripts/user_config.py, expert defaults in
src/rainseason/schemas/param.py
"""

import sys

from rainseason.cli.run_seasons import main


if __name__ == "__main__":
    sys.exit(main())
