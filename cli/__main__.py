"""
CLI Module Main Entry Point

Allows running the CLI with:
    python -m cli
"""

from . import main

if __name__ == '__main__':
    main()
