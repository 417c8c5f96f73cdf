"""Main entry point when executing genpool as a package.

This allows running the package using python -m genpool.
"""

from genpool.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
