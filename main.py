#!/usr/bin/env python3
"""
Whendy auth CLI -- issue and inspect compact tokens and cookie headers.

Usage:
  python main.py genkey
  python main.py token issue --claims '{"userId": 1, "role": "admin"}'
  python main.py token issue --claims '{"userId": 1}' --expires-in 60 --issuer myapp --audience users
  python main.py token verify eyJhbGciOi...
  python main.py cookie parse "a=1; b=2"

Environment variables:
  SECRET_KEY    Signing key (>= 32 characters). --key overrides it.
  DEBUG         With DEBUG=true and no SECRET_KEY, a throwaway key is generated.
"""

import argparse
import json
import logging
import secrets
import sys
from typing import Optional

from auth.cookies import parse_cookie_header
from auth.errors import ConfigError, CookieError, TokenError
from auth.tokens import TokenCodec
from core.config import get_settings

logger = logging.getLogger("whendy.cli")


def _resolve_key(explicit: Optional[str]) -> str:
    """Return --key when given, otherwise SECRET_KEY from Settings."""
    if explicit:
        return explicit
    return get_settings().secret_key


def _build_codec(args: argparse.Namespace) -> TokenCodec:
    return TokenCodec(
        _resolve_key(args.key),
        expires_in=getattr(args, "expires_in", None),
        issuer=args.issuer,
        audience=args.audience,
    )


def _cmd_genkey(args: argparse.Namespace) -> int:
    print(secrets.token_hex(32))
    return 0


def _cmd_token_issue(args: argparse.Namespace) -> int:
    try:
        claims = json.loads(args.claims)
    except json.JSONDecodeError as e:
        print(f"  [!] --claims is not valid JSON: {e}", file=sys.stderr)
        return 2
    try:
        print(_build_codec(args).generate(claims))
    except TokenError as e:
        print(f"  [!] {e}", file=sys.stderr)
        return 2
    return 0


def _cmd_token_verify(args: argparse.Namespace) -> int:
    claims = _build_codec(args).verify(args.token)
    if claims is None:
        print("invalid token", file=sys.stderr)
        return 1
    print(json.dumps(claims, indent=2))
    return 0


def _cmd_cookie_parse(args: argparse.Namespace) -> int:
    try:
        cookies = parse_cookie_header(args.header)
    except CookieError as e:
        print(f"  [!] {e}", file=sys.stderr)
        return 2
    print(json.dumps({name: record.value for name, record in cookies.items()}, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whendy-auth",
        description="Issue and verify compact HS256 tokens; inspect Cookie headers.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py genkey
  SECRET_KEY=... python main.py token issue --claims '{"userId": 1}' --expires-in 60
  SECRET_KEY=... python main.py token verify <token>
  python main.py cookie parse "whsessionid=abc; theme=dark"
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log token rejection reasons")
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    genkey = commands.add_parser("genkey", help="Print a random 64-character signing key")
    genkey.set_defaults(func=_cmd_genkey)

    token = commands.add_parser("token", help="Issue or verify a token")
    token_commands = token.add_subparsers(dest="token_command", metavar="ACTION", required=True)

    def _codec_options(p: argparse.ArgumentParser) -> None:
        p.add_argument("--key", metavar="KEY", help="Signing key (default: SECRET_KEY)")
        p.add_argument("--issuer", metavar="ISS", help="Issuer claim to add / require")
        p.add_argument("--audience", metavar="AUD", help="Audience claim to add / require")

    issue = token_commands.add_parser("issue", help="Sign a JSON object of claims")
    _codec_options(issue)
    issue.add_argument("--claims", default="{}", metavar="JSON", help="Claims as a JSON object (default: {})")
    issue.add_argument("--expires-in", type=int, default=None, metavar="SECONDS", help="Token lifetime in seconds")
    issue.set_defaults(func=_cmd_token_issue)

    verify = token_commands.add_parser("verify", help="Verify a token and print its claims")
    _codec_options(verify)
    verify.add_argument("token", help="Compact token to verify")
    verify.set_defaults(func=_cmd_token_verify)

    cookie = commands.add_parser("cookie", help="Cookie header utilities")
    cookie_commands = cookie.add_subparsers(dest="cookie_command", metavar="ACTION", required=True)
    parse = cookie_commands.add_parser("parse", help="Parse a Cookie header into name -> value JSON")
    parse.add_argument("header", help='Cookie header value, e.g. "a=1; b=2"')
    parse.set_defaults(func=_cmd_cookie_parse)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if not getattr(args, "func", None):
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except (ConfigError, ValueError) as e:
        # Short --key, or Settings refusing a missing/short SECRET_KEY.
        logger.debug("Configuration rejected", exc_info=True)
        print(f"  [!] {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
