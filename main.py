#!/usr/bin/env python3
"""
Study assistant auth server - Google sign-in and session cookies for the study UI.
"""

import argparse
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep server imports lazy (inside functions) so `--check-config` does not build the app.
#


def check_config() -> int:
    """Print configuration problems; return a process exit code."""
    from studyhub.auth.config import config_problems, load_auth_config

    cfg = load_auth_config()
    problems = config_problems(cfg)
    if not problems:
        print("Auth configuration OK")
        print(f"   cookie_secure={cfg.cookie_secure} state_cookie_samesite={cfg.state_cookie_samesite}")
        print(f"   frontend_origin={cfg.frontend_origin or '(derived from request host)'}")
        return 0
    print("Auth configuration problems:")
    for p in problems:
        print(f"   - {p}")
    return 1


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Study assistant auth server (Google OAuth + signed sessions)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Verify GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET / APP_SECRET
  python main.py --check-config

  # Run the server (port defaults to $PORT or 4000)
  python main.py --serve --port 4000
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the HTTP auth server")
    parser.add_argument(
        "--check-config", action="store_true", help="Report auth configuration problems and exit non-zero if any"
    )
    parser.add_argument("--host", default="0.0.0.0", help="Server bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Server listen port (default: $PORT or 4000)")

    args = parser.parse_args()

    if args.check_config:
        sys.exit(check_config())

    if args.serve:
        from studyhub.api.server import run

        run(host=args.host, port=args.port)
        return

    # No arguments provided
    parser.print_help()


if __name__ == "__main__":
    main()
