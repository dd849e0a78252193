#!/usr/bin/env python3
"""Radicale MCP server - startup script."""

import asyncio
import sys

from .config import load_config
from .monitoring import ConfigurationError
from .presentation import serve


def main():
    """Main entry point."""
    try:
        config = load_config()
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        if e.details.get('missing'):
            print(f"Missing: {', '.join(e.details['missing'])}", file=sys.stderr)
        sys.exit(1)

    config.setup_logging()

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        pass


if __name__ == '__main__':
    main()
