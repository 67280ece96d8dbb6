"""LDAP connection wrappers built on ldap3."""

from .errors import (
    AD_ERROR_CODES,
    AD_ERROR_CODE_RE,
    ConnectError,
    DirectoryOperationError,
    LdapError,
    describe_code,
    is_failure,
    parse_ad_error_code,
    refine_code,
    verify,
)
from .connection import Ldap, dn_to_ufn, escape, explode_dn, fqdn_to_base_dn, is_ip_address
from .result import Result
from .legacy import LinkResource, ResultResource

__all__ = [
    "AD_ERROR_CODES",
    "AD_ERROR_CODE_RE",
    "ConnectError",
    "DirectoryOperationError",
    "LdapError",
    "describe_code",
    "is_failure",
    "parse_ad_error_code",
    "refine_code",
    "verify",
    "Ldap",
    "dn_to_ufn",
    "escape",
    "explode_dn",
    "fqdn_to_base_dn",
    "is_ip_address",
    "Result",
    "LinkResource",
    "ResultResource",
]
