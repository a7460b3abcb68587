"""Run the linestring splitter from a source checkout."""

import sys

from linestring_splitter.cli import main

if __name__ == "__main__":
    sys.exit(main())
