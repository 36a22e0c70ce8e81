"""Allow running as python -m jupswap."""

import sys

from jupswap.cli import main

sys.exit(main())
