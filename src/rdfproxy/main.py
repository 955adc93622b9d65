"""Main entry point for the rdfproxy CLI.

Usage:
    python -m rdfproxy.main --help
    rdfproxy --help  # If installed via pip/uv
"""

from rdfproxy.cli import main

if __name__ == "__main__":
    main()
