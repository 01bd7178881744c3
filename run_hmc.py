"""
SU(2) HMC Run Script
=====================================
Generates a chain of 4D SU(2) gauge configurations from hmc.ini in the
current directory.

    python run_hmc.py [hmc.ini] [--output-dir DIR]
"""

import sys

from su2hmc.cli import main


if __name__ == "__main__":
    args = sys.argv[1:]
    if not args or args[0].startswith('-'):
        args = ['hmc.ini'] + args
    sys.exit(main(['run'] + args))
