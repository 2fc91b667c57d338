"""Allow ``python -m identitymigrator``."""

import sys

from identitymigrator.cli import main

if __name__ == "__main__":
    sys.exit(main())
