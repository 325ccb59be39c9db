import sys

from occurrence_flagging.cli import main

if __name__ == "__main__":
    sys.exit(main())
