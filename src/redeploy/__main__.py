"""Allow ``python -m redeploy``."""

from redeploy.cli.app import app

if __name__ == "__main__":
    app()
