"""Allow running crontask as a module: python -m crontask."""

from crontask.cli.app import main

if __name__ == "__main__":
    main()
