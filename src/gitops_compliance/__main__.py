"""Allow running as ``python -m gitops_compliance``."""

import sys

from gitops_compliance.cli import main

if __name__ == "__main__":
    sys.exit(main())
