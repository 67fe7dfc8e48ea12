"""archive-runner entry point.

Supports: python -m archive_runner
"""

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
