"""Entry point for ``python -m crossplay``."""

from crossplay.cli.typer_app import app

if __name__ == "__main__":
    app()
