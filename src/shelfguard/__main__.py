"""Allow running the CLI with ``python -m shelfguard``."""

from shelfguard.cli import main

if __name__ == "__main__":
    main()
