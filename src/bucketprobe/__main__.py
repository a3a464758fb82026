"""Allow running bucketprobe as ``python -m bucketprobe``."""

import sys

from bucketprobe.cli import main

sys.exit(main())
