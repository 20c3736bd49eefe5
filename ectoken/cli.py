"""Command-line entrypoint: generate keys, issue and verify tokens."""

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from ectoken.core.errors import TokenError
from ectoken.core.settings import TokenSettings
from ectoken.crypto.keys import (
    generate_keypair,
    load_public_key,
    public_key_to_jwk,
    write_jwk,
)
from ectoken.crypto.signer import logging_observer, new_issuer
from ectoken.crypto.types import Token
from ectoken.crypto.verifier import new_verifier

logger = logging.getLogger("ectoken.cli")


def _cmd_generate(args: argparse.Namespace, settings: TokenSettings) -> None:
    generate_keypair(args.path, settings.profile())
    if args.jwk:
        write_jwk(args.path, settings.profile())


def _cmd_issue(args: argparse.Namespace, settings: TokenSettings) -> None:
    issuer = new_issuer(args.path, settings.profile(), observer=logging_observer())
    token = Token.expiring_in(
        args.ttl if args.ttl is not None else settings.token_ttl,
        username=args.username,
        groups=tuple(args.group),
    )
    print(issuer.issue(token))


def _cmd_verify(args: argparse.Namespace, settings: TokenSettings) -> None:
    token = new_verifier(args.path, settings.profile()).verify(args.token)
    print(json.dumps(token.claims(), sort_keys=True))


def _cmd_export_jwk(args: argparse.Namespace, settings: TokenSettings) -> None:
    profile = settings.profile()
    jwk = public_key_to_jwk(load_public_key(args.path, profile), profile)
    print(jwk.model_dump_json())


def build_parser(settings: TokenSettings) -> argparse.ArgumentParser:
    """Build the argument parser; key paths default to the configured one."""
    parser = argparse.ArgumentParser(
        prog="ectoken", description="Issue and verify EC-signed tokens"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate-keypair", help="Write <path>.priv and <path>.pub")
    gen.add_argument("path", nargs="?", default=settings.key_path)
    gen.add_argument("--jwk", action="store_true", help="Also write <path>.jwk")
    gen.set_defaults(func=_cmd_generate)

    issue = sub.add_parser("issue", help="Print a signed token")
    issue.add_argument("path", nargs="?", default=settings.key_path)
    issue.add_argument("--username", required=True)
    issue.add_argument("--group", action="append", default=[])
    issue.add_argument("--ttl", type=int, default=None, help="Lifetime in seconds")
    issue.set_defaults(func=_cmd_issue)

    verify = sub.add_parser("verify", help="Verify a token and print its claims")
    verify.add_argument("token")
    verify.add_argument("path", nargs="?", default=settings.key_path)
    verify.set_defaults(func=_cmd_verify)

    export = sub.add_parser("export-jwk", help="Print the public key as a JWK")
    export.add_argument("path", nargs="?", default=settings.key_path)
    export.set_defaults(func=_cmd_export_jwk)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        settings = TokenSettings()
    except ValidationError as e:
        logger.error("Invalid ECTOKEN_ settings: %s", e)
        return 1
    args = build_parser(settings).parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    try:
        args.func(args, settings)
    except TokenError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
