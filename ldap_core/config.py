"""Configuration file handling."""

import argparse
import configparser
from typing import Any, Dict, Optional


DEFAULT_CONFIG_TEMPLATE = """\
# ldap-core Configuration File
# ----------------------------
# Values given on the command line take precedence over this file.

[connection]
# LDAP URL of the server (ldap:// or ldaps://)
url = ldap://localhost:389
# DN to bind as (leave empty for an anonymous bind)
bind_dn =
# Password for bind_dn
password =
# Upgrade the connection with StartTLS before binding
start_tls = false
# Network timeout in seconds (optional, leave empty for the ldap3 default)
timeout =

[search]
# Base DN for searches (optional, leave empty to derive it from the server name)
base_dn =
# Maximum number of entries returned (0 = no limit)
size_limit = 0
# Maximum seconds the server spends on a search (0 = no limit)
time_limit = 0
# Comma separated attributes to retrieve (empty = all)
attributes =
"""


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from INI file.

    Returns a dict with all config values, using None for unset values.
    """
    config = configparser.ConfigParser()
    config.read(config_path)

    result: Dict[str, Any] = {}

    # [connection] section
    if config.has_section('connection'):
        result['url'] = config.get('connection', 'url', fallback=None)
        bind_dn = config.get('connection', 'bind_dn', fallback='')
        result['bind_dn'] = bind_dn if bind_dn.strip() else None
        password = config.get('connection', 'password', fallback='')
        result['password'] = password if password else None
        result['start_tls'] = config.getboolean('connection', 'start_tls', fallback=False)
        timeout_str = config.get('connection', 'timeout', fallback='')
        result['timeout'] = int(timeout_str) if timeout_str.strip() else None

    # [search] section
    if config.has_section('search'):
        base_dn = config.get('search', 'base_dn', fallback='')
        result['base_dn'] = base_dn if base_dn.strip() else None
        result['size_limit'] = config.getint('search', 'size_limit', fallback=0)
        result['time_limit'] = config.getint('search', 'time_limit', fallback=0)
        attributes = config.get('search', 'attributes', fallback='')
        result['attributes'] = [a.strip() for a in attributes.split(',') if a.strip()]

    return result


def merge_config_with_args(config: Dict[str, Any], args: argparse.Namespace) -> argparse.Namespace:
    """
    Merge config file values with CLI args. CLI args take precedence.
    """
    for config_key, config_value in config.items():
        if config_value is None:
            continue

        if hasattr(args, config_key):
            current_value = getattr(args, config_key)
            # If CLI provided a value (not None and not the argparse default), keep it.
            if current_value is not None:
                if isinstance(current_value, bool) and not current_value and config_value:
                    setattr(args, config_key, config_value)
                # Preserve explicit CLI values (including False) unless config is True.
                continue

        setattr(args, config_key, config_value)

    return args


def generate_config_file(output_path: Optional[str] = None) -> str:
    """Generate a template configuration file."""
    if output_path:
        with open(output_path, 'w') as f:
            f.write(DEFAULT_CONFIG_TEMPLATE)
        return f"Configuration template written to: {output_path}"
    else:
        return DEFAULT_CONFIG_TEMPLATE
