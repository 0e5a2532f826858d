#!/usr/bin/env python3
"""
Guitar tuner backend - Google login, JWT sessions and the user profile API.
"""

import argparse
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep backend imports lazy (inside main) so `--migrate` does not pull in the web stack.
#


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Guitar tuner backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the API on PORT (default: 8080)
  python main.py --serve

  # Apply pending database migrations and exit
  python main.py --migrate
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API server")
    parser.add_argument("--migrate", action="store_true", help="Apply pending Postgres migrations (DATABASE_URL)")
    parser.add_argument("--host", default="0.0.0.0", help="Server bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Server listen port (default: $PORT or 8080)")

    args = parser.parse_args()

    if args.migrate:
        from guitar.storage.migrate import main as migrate_main

        sys.exit(migrate_main())

    if args.serve:
        from guitar.api.server import run

        run(host=args.host, port=args.port)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
