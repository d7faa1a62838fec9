import sys

from mdv.cli import main

sys.exit(main())
