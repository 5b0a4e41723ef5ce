import sys

from restic_b2.cli import main

sys.exit(main())
