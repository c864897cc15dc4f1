import sys

from portcfg.cli import main

if __name__ == "__main__":
    sys.exit(main())
