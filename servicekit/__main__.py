import sys

from servicekit.cli import main

raise SystemExit(main(sys.argv[1:]))
