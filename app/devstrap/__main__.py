"""Entry point for ``python -m devstrap`` and the remote zip bundle."""

from devstrap.cli.main import app

if __name__ == "__main__":
    app(prog_name="devstrap")
