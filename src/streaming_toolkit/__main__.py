"""Allow ``python -m streaming_toolkit``."""

import sys

from streaming_toolkit.cli import main

sys.exit(main())
