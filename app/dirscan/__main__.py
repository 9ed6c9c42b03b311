"""Allow running dirscan as ``python -m dirscan``."""

from dirscan.cli.main import app

if __name__ == "__main__":
    app()
