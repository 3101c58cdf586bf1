import sys

from transav1.cli import main

sys.exit(main())
