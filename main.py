import sys

from src.sitecraft.app.sitecraft_app import cli


if __name__ == "__main__":
    """
    Main entry point for the SiteCraft command line.
    """
    sys.exit(cli())
