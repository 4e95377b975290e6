"""Allow ``python -m matterof``."""

import sys

from .cli import main

sys.exit(main())
