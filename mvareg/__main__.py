import sys

from mvareg.cli import apply_main

sys.exit(apply_main())
