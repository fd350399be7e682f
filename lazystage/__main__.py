"""Module entrypoint for ``python -m lazystage``.

This keeps module-mode execution behavior identical to the CLI script.
All argument parsing and runtime setup happen in ``lazystage.cli``.
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
