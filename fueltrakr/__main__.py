"""Main entry point when executing fueltrakr as a package.

This allows running the package using python -m fueltrakr.
"""

from fueltrakr.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
