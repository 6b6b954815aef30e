"""Allow ``python -m env_extract``."""

import sys

from env_extract.cli import main

sys.exit(main())
