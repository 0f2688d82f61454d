"""
Code for "python3 -mpidctl".
"""

import os
import sys

from pidctl._main import cli

ec = 0

try:
    cli()
except KeyboardInterrupt:
    if "PIDCTL_TB" in os.environ:
        raise
    print("\rInterrupted.   ", file=sys.stderr)
    ec = 9

sys.exit(ec)
