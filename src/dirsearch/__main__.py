"""Allow ``python -m dirsearch``."""

import sys

from .cli import main

sys.exit(main())
