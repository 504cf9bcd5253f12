"""Allow running as python -m dotlink."""

import sys

from .cli import main

sys.exit(main())
