"""Command-line interface for ldap-core."""

import argparse
import json
import sys
from urllib.parse import urlparse

from loguru import logger

from .config import generate_config_file, load_config, merge_config_with_args
from .constants import Colors, DEFAULT_CONFIG_PATH, Option, Scope
from .ldap import (
    DirectoryOperationError,
    Ldap,
    LdapError,
    describe_code,
    fqdn_to_base_dn,
    is_failure,
    is_ip_address,
    refine_code,
)
from .models import ConnectionSettings, err_to_str

SCOPE_COMMANDS = {
    "read": Scope.BASE,
    "list": Scope.ONELEVEL,
    "search": Scope.SUBTREE,
}


def error(message: str) -> None:
    print(f"{Colors.RED}[!] {message}{Colors.NC}", file=sys.stderr)


def resolve_settings(args) -> ConnectionSettings:
    """Merge the config file (if any) into args and build connection settings."""
    if not getattr(args, 'config', None) and DEFAULT_CONFIG_PATH.is_file():
        args.config = str(DEFAULT_CONFIG_PATH)
    if getattr(args, 'config', None):
        args = merge_config_with_args(load_config(args.config), args)
        print(f"{Colors.GREEN}[+] Loaded config from: {args.config}{Colors.NC}", file=sys.stderr)
    if not getattr(args, 'url', None):
        raise ValueError("LDAP URL is required (-H)")
    return ConnectionSettings.from_dict(vars(args))


def resolve_base_dn(settings: ConnectionSettings) -> str:
    """Determine the base DN from settings or the server host name."""
    if settings.base_dn:
        return settings.base_dn

    host = urlparse(settings.url).hostname or settings.url
    if not is_ip_address(host) and "." in host:
        return fqdn_to_base_dn(host)

    raise ValueError("Cannot determine base DN from the server address; provide --base-dn")


def open_link(settings: ConnectionSettings) -> Ldap:
    """Connect, optionally start TLS, and bind as configured."""
    link = Ldap(settings.url)
    if settings.timeout:
        link.set_option(Option.NETWORK_TIMEOUT, settings.timeout)
    try:
        if settings.start_tls:
            link.start_tls()
        link.bind(settings.bind_dn, settings.password)
    except (LdapError, ValueError):
        link.unbind()
        raise
    return link


def print_entries(entries, as_json: bool) -> None:
    if as_json:
        print(json.dumps(entries, indent=2, default=str))
        return
    for entry in entries:
        print(f"dn: {entry['dn']}")
        for name, values in entry["attributes"].items():
            for value in values if isinstance(values, list) else [values]:
                print(f"{name}: {value}")
        print()


def cmd_search(args) -> int:
    """Run a read, list or search command."""
    try:
        settings = resolve_settings(args)
        base_dn = resolve_base_dn(settings)
    except (OSError, ValueError) as e:
        error(str(e))
        return 1

    try:
        with open_link(settings) as link:
            result = link.ldap_search(
                base_dn,
                args.filter,
                settings.attributes,
                SCOPE_COMMANDS[args.command],
                size_limit=settings.size_limit,
                time_limit=settings.time_limit,
            )
            if args.sort:
                result.sort(args.sort)
            entries = result.get_entries()
            truncated = link.errno() != 0
    except DirectoryOperationError as e:
        error(f"{e.message} ({e.name}, code {e.code})")
        if e.error_string:
            print(f"    {e.error_string}", file=sys.stderr)
        return 1
    except (LdapError, ValueError) as e:
        error(str(e))
        return 1

    print_entries(entries, args.json)
    print(f"{Colors.GREEN}[+] {len(entries)} entries{Colors.NC}", file=sys.stderr)
    if truncated:
        print(f"{Colors.ORANGE}[!] Size limit exceeded, results truncated{Colors.NC}", file=sys.stderr)
    return 0


def cmd_compare(args) -> int:
    """Compare an attribute value of an entry."""
    try:
        settings = resolve_settings(args)
    except (OSError, ValueError) as e:
        error(str(e))
        return 1

    try:
        with open_link(settings) as link:
            matched = link.compare(args.dn, args.attribute, args.value)
    except DirectoryOperationError as e:
        error(f"{e.message} ({e.name}, code {e.code})")
        return 1
    except (LdapError, ValueError) as e:
        error(str(e))
        return 1

    print("TRUE" if matched else "FALSE")
    return 0


def cmd_explain(args) -> int:
    """Explain how a result code and error string are classified."""
    code = refine_code(args.code, args.error_string)
    failure = is_failure(code)

    print(f"  {Colors.LBLUE}Result code:{Colors.NC}   {args.code} ({err_to_str(args.code)})")
    if code != args.code:
        print(f"  {Colors.LBLUE}AD sub-code:{Colors.NC}   {code}")
    print(f"  {Colors.LBLUE}Name:{Colors.NC}          {describe_code(code)}")
    if failure:
        print(f"  {Colors.LBLUE}Outcome:{Colors.NC}       {Colors.RED}failure{Colors.NC}")
    else:
        print(f"  {Colors.LBLUE}Outcome:{Colors.NC}       {Colors.GREEN}success{Colors.NC}")
    return 1 if failure else 0


def cmd_generate_config(args) -> int:
    """Print or write a configuration template."""
    try:
        print(generate_config_file(args.output))
    except OSError as e:
        error(f"Failed to write config: {e}")
        return 1
    return 0


def add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-c", "--config", help=f"Configuration file (INI format, default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("-H", "--url", help="LDAP URL (e.g., ldap://dc01.corp.local)")
    parser.add_argument("-D", "--bind-dn", dest="bind_dn", help="DN to bind as (anonymous if omitted)")
    parser.add_argument("-w", "--password", help="Password for the bind DN")
    parser.add_argument("-Z", "--start-tls", dest="start_tls", action="store_true", default=None,
                        help="Issue StartTLS before binding")
    parser.add_argument("--timeout", type=int, help="Network timeout in seconds")


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Query an LDAP directory, with Active Directory error code decoding.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every LDAP operation")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # read / list / search subcommands
    for command, scope in SCOPE_COMMANDS.items():
        search_parser = subparsers.add_parser(
            command,
            help=f"Search with {scope.name.lower()} scope",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  %(prog)s -H ldap://dc01.corp.local -D 'CN=admin,CN=Users,DC=corp,DC=local' -w 'P@ss' \\
      '(objectClass=user)' -a sAMAccountName mail
  %(prog)s -c ldapcore.ini '(cn=John*)' --json
        """,
        )
        add_connection_arguments(search_parser)
        search_parser.add_argument("filter", nargs="?", default="(objectClass=*)",
                                   help="LDAP filter (default: (objectClass=*))")
        search_parser.add_argument("-b", "--base-dn", dest="base_dn", help="Search base DN")
        search_parser.add_argument("-a", "--attributes", nargs="+", help="Attributes to retrieve (default: all)")
        search_parser.add_argument("--size-limit", dest="size_limit", type=int, help="Maximum entries returned")
        search_parser.add_argument("--time-limit", dest="time_limit", type=int, help="Maximum seconds spent")
        search_parser.add_argument("--sort", help="Sort entries by this attribute")
        search_parser.add_argument("--json", action="store_true", help="Print entries as JSON")
        search_parser.set_defaults(func=cmd_search)

    # Compare subcommand
    compare_parser = subparsers.add_parser("compare", help="Compare an attribute value of an entry")
    add_connection_arguments(compare_parser)
    compare_parser.add_argument("dn", help="DN of the entry")
    compare_parser.add_argument("attribute", help="Attribute name")
    compare_parser.add_argument("value", help="Value to compare")
    compare_parser.set_defaults(func=cmd_compare)

    # Explain subcommand
    explain_parser = subparsers.add_parser(
        "explain",
        help="Classify a result code and error string",
        epilog="""
Examples:
  %(prog)s 49 --error-string '80090308: LdapErr: DSID-0C090334, comment: AcceptSecurityContext error, data 775, vece'
        """,
    )
    explain_parser.add_argument("code", type=int, help="LDAP result code")
    explain_parser.add_argument("--error-string", dest="error_string", default="",
                                help="Diagnostic message returned by the server")
    explain_parser.set_defaults(func=cmd_explain)

    # Generate-config subcommand
    config_parser = subparsers.add_parser("generate-config", help="Print a configuration template")
    config_parser.add_argument("-o", "--output", help="Write the template to this file")
    config_parser.set_defaults(func=cmd_generate_config)

    args = parser.parse_args(argv)

    # Disable colors if not a TTY
    if not sys.stderr.isatty():
        Colors.disable()

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "ERROR")
    logger.enable("ldap_core")

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
