"""
Entry point for the PerfOps CLI application.
"""

import sys
from perfops.cli.main import app


def main():
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        print("\nCancelled by user.")
        sys.exit(130)


if __name__ == "__main__":
    main()
