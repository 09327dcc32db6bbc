import sys

from bootforge.cli import main

sys.exit(main())
