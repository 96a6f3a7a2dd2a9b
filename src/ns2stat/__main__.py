"""
ns2stat CLI Entry Point

Allows running the package as a module: python -m ns2stat
"""


def main():
    """Main entry point for the CLI."""
    from ns2stat.cli import app

    app()


if __name__ == "__main__":
    main()
