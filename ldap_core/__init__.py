"""
ldap-core - Object wrapper for LDAP client operations

Forwards connect, bind, search and modify operations to ldap3 and turns
failed result codes into exceptions, including the Active Directory
sub-codes hidden in "invalid credentials" errors.
"""

__version__ = "1.0.0"

from loguru import logger

from .constants import (
    Colors,
    DEFAULT_CONFIG_PATH,
    Deref,
    Escape,
    ModifyBatch,
    NON_FAILURE_CODES,
    Option,
    ResultCode,
    Scope,
)
from .models import ConnectionSettings, OperationOutcome, err_to_str
from .ldap import (
    AD_ERROR_CODES,
    ConnectError,
    DirectoryOperationError,
    Ldap,
    LdapError,
    LinkResource,
    Result,
    ResultResource,
    describe_code,
    parse_ad_error_code,
    verify,
)
from .config import load_config
from .cli import main

# Library code stays quiet unless the application opts in
logger.disable("ldap_core")

__all__ = [
    # Version
    "__version__",
    # Constants
    "Colors",
    "DEFAULT_CONFIG_PATH",
    "Deref",
    "Escape",
    "ModifyBatch",
    "NON_FAILURE_CODES",
    "Option",
    "ResultCode",
    "Scope",
    # Models
    "ConnectionSettings",
    "OperationOutcome",
    "err_to_str",
    # LDAP
    "AD_ERROR_CODES",
    "ConnectError",
    "DirectoryOperationError",
    "Ldap",
    "LdapError",
    "LinkResource",
    "Result",
    "ResultResource",
    "describe_code",
    "parse_ad_error_code",
    "verify",
    # Config
    "load_config",
    # CLI
    "main",
]
