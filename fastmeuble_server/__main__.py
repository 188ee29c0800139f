"""Allow running as python -m fastmeuble_server."""

from .cli import main

if __name__ == "__main__":
    main()
