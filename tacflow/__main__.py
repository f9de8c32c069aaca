"""Allow ``python -m tacflow``."""

import sys

from tacflow.main import main

sys.exit(main())
