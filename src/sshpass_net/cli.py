"""Command-line interface for sshpass.net."""

from __future__ import annotations

import argparse
import os
import sys
from importlib import metadata
from typing import IO, Iterator, List, Mapping, NoReturn, Optional, Sequence

from .config import ToolConfig, load_config
from .errors import CredentialError, SshpassError, UsageError
from .request import CredentialSource, InvocationRequest, parse_user_host
from .runner import SessionRunner
from .utils.logging import configure_logging

PROG = "sshpass.net"

HELP_HINT = f"Try `{PROG} --help` for more information."

# Options whose value is optional and must be attached (-kPATH, --key=PATH).
_OPTIONAL_VALUE = {"--key", "--envvar"}
# Options that take the following token as their value, whatever it looks like.
_REQUIRED_VALUE = {"--filename", "--password", "--host"}
_SHORT_OPTIONS = {
    "f": "--filename",
    "k": "--key",
    "p": "--password",
    "e": "--envvar",
    "h": "--host",
    "q": "--quiet",
    "v": "--verbose",
    "?": "--help",
    "V": "--version",
}


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports problems as UsageError instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog=PROG,
        usage="%(prog)s [OPTIONS]+ command parameters",
        description=(
            "Pass a password to ssh for automation.\n"
            f"Basic usage: {PROG} user@host command. Password is accepted via STDIN."
        ),
        epilog="At most one of -f, -k, -p, or -e may be used.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )
    sources = parser.add_mutually_exclusive_group()
    sources.add_argument(
        "-f", "--filename", metavar="PATH", help="Take password to use from file."
    )
    sources.add_argument(
        "-k",
        "--key",
        nargs="?",
        const="",
        metavar="PATH",
        help="Use a private key file. Defaults to the current user's ~/.ssh/id_rsa.",
    )
    sources.add_argument(
        "-p", "--password", help="Provide password as argument (security unwise)."
    )
    sources.add_argument(
        "-e",
        "--envvar",
        nargs="?",
        const="",
        metavar="NAME",
        help='Password is passed as env-var NAME if given, "SSHPASS" otherwise.',
    )
    parser.add_argument(
        "-h",
        "--host",
        metavar="USER@HOST",
        help=(
            "User and host to ssh to, formatted as user@host. Can be omitted "
            "if user@host is given as the first command parameter."
        ),
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Suppress password prompt on STDIN."
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Be verbose about what you're doing."
    )
    parser.add_argument(
        "-?", "--help", dest="show_help", action="store_true", help="Show help (this message)."
    )
    parser.add_argument(
        "-V", "--version", dest="show_version", action="store_true",
        help="Show version information.",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def _attach_values(name: str, rest: str, tokens: Iterator[str]) -> str:
    if name in _OPTIONAL_VALUE:
        return f"{name}={rest}"
    value = rest or next(tokens, None)
    return name if value is None else f"{name}={value}"


def _normalize_options(argv: Sequence[str]) -> List[str]:
    """Rewrite options into ``--long`` / ``--long=value`` form before argparse sees them.

    Option values are always attached, so a password like ``-secret`` is never
    mistaken for an option and a bare ``-k``/``-e`` never swallows the target.
    Clustered short flags (``-qk``) are split. Scanning stops at the first
    token that is not an option; the rest belongs to the remote command.
    """
    result: List[str] = []
    tokens = iter(argv)
    for token in tokens:
        if token == "--" or token == "-" or not token.startswith("-"):
            result.append(token)
            result.extend(tokens)
            break
        if token.startswith("--"):
            if token in _OPTIONAL_VALUE or token in _REQUIRED_VALUE:
                result.append(_attach_values(token, "", tokens))
            else:
                result.append(token)
            continue
        flags = token[1:]
        for index, char in enumerate(flags):
            name = _SHORT_OPTIONS.get(char)
            if name is None:
                # argparse reports it
                result.append(f"-{char}")
                continue
            if name in _OPTIONAL_VALUE or name in _REQUIRED_VALUE:
                result.append(_attach_values(name, flags[index + 1:], tokens))
                break
            result.append(name)
    return result


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    if argv is None:
        argv = sys.argv[1:]
    return build_parser().parse_args(_normalize_options(argv))


def parse_invocation(
    argv: Optional[Sequence[str]] = None,
    config: Optional[ToolConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InvocationRequest:
    """Build the immutable request for one run from the argument vector."""
    return build_request(parse_arguments(argv), config, environ)


def build_request(
    args: argparse.Namespace,
    config: Optional[ToolConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InvocationRequest:
    """Turn parsed arguments into a request, validating the target and command.

    Help and version requests skip validation entirely.
    """
    config = config or ToolConfig()
    environ = os.environ if environ is None else environ

    if args.show_help or args.show_version:
        return InvocationRequest(
            quiet=args.quiet,
            verbose=args.verbose,
            show_help=args.show_help,
            show_version=args.show_version,
        )

    envvar = ""
    if args.filename is not None:
        source, secret = CredentialSource.FILE, args.filename
    elif args.key is not None:
        source, secret = CredentialSource.KEY, args.key
    elif args.password is not None:
        source, secret = CredentialSource.PASSWORD, args.password
    elif args.envvar is not None:
        envvar = args.envvar or config.default_envvar
        source, secret = CredentialSource.ENV, environ.get(envvar, "")
        if not secret:
            raise CredentialError(
                f"-e options given but {envvar} environment variable is not set."
            )
    else:
        source, secret = CredentialSource.STDIN, ""

    tokens = list(args.command)
    if tokens and tokens[0] == "--":
        tokens.pop(0)
    if args.host is not None:
        user, host = parse_user_host(args.host)
    elif tokens:
        user, host = parse_user_host(tokens.pop(0))
    else:
        raise UsageError("No host was passed. Host should be formatted as user@host.")
    if not tokens:
        raise UsageError("No commands were passed. Connection aborted.")

    return InvocationRequest(
        source=source,
        secret=secret,
        user=user,
        host=host,
        command_tokens=tuple(tokens),
        quiet=args.quiet,
        verbose=args.verbose,
        envvar=envvar,
    )


def package_version() -> str:
    try:
        return metadata.version("sshpass-net")
    except metadata.PackageNotFoundError:
        return "0+unknown"


def version_banner() -> str:
    return "\n".join(
        [
            f"{PROG}:",
            f"  Version {package_version()}",
            "Based on sshpass",
            "  (C) 2006-2011 Lingnu Open Source Consulting Ltd.",
            "  (C) 2015-2016, 2021-2022 Shachar Shemesh",
            "This program is free software, and can be distributed under the terms of the GPL.",
            "",
        ]
    )


def run_cli(
    argv: Optional[Sequence[str]] = None,
    *,
    runner: Optional[SessionRunner] = None,
    stdout: Optional[IO[str]] = None,
    stderr: Optional[IO[str]] = None,
) -> int:
    """Run one invocation and return the process exit status."""
    out = stdout if stdout is not None else sys.stdout
    err = stderr if stderr is not None else sys.stderr
    try:
        args = parse_arguments(argv)
        if args.show_help:
            out.write(build_parser().format_help())
            return 0
        if args.show_version:
            out.write(version_banner())
            return 0

        config = load_config()
        request = build_request(args, config)
        configure_logging(request.verbose, err)
        if request.verbose:
            err.write(version_banner())
        runner = runner or SessionRunner(config, stdout=out, stderr=err)
        runner.run(request)
    except SshpassError as exc:
        err.write(f"{exc.prefix}: {exc}\n")
        err.write(f"{HELP_HINT}\n")
        return 1
    return 0
