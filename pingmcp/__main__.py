"""Entry point: python3 -m pingmcp [--sound-dir DIR] [--no-cache] [--two-tier]"""

from .mcp import main


if __name__ == "__main__":
    main()
