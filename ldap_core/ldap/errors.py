"""Result verification, AD sub-code extraction and the package exceptions."""

import re
from dataclasses import replace
from typing import TYPE_CHECKING, List, Optional

from loguru import logger

from ..constants import NON_FAILURE_CODES, Option, ResultCode

if TYPE_CHECKING:
    from .connection import Ldap

# AD sub-error codes extracted from bind error messages (the digits after "data").
# Only the all-decimal ones can be told apart from the generic code 49; "52e"
# (ERROR_LOGON_FAILURE) means the same thing as 49 anyway.
# Reference: https://docs.microsoft.com/en-us/windows/win32/debug/system-error-codes
AD_ERROR_CODES = {
    ResultCode.USER_NOT_FOUND: "ERROR_NO_SUCH_USER",
    ResultCode.NOT_PERMITTED_TO_LOGON_AT_THIS_TIME: "ERROR_INVALID_LOGON_HOURS",
    ResultCode.RESTRICTED_TO_SPECIFIC_MACHINES: "ERROR_INVALID_WORKSTATION",
    ResultCode.PASSWORD_EXPIRED: "ERROR_PASSWORD_EXPIRED",
    ResultCode.ACCOUNT_DISABLED: "ERROR_ACCOUNT_DISABLED",
    534: "ERROR_LOGON_TYPE_NOT_GRANTED",
    ResultCode.ACCOUNT_EXPIRED: "ERROR_ACCOUNT_EXPIRED",
    ResultCode.USER_MUST_RESET_PASSWORD: "ERROR_PASSWORD_MUST_CHANGE",
    ResultCode.USER_ACCOUNT_LOCKED: "ERROR_ACCOUNT_LOCKED_OUT",
}

# Matches the sub-code in messages like:
# "80090308: LdapErr: DSID-0C090334, comment: AcceptSecurityContext error, data 775, vece"
AD_ERROR_CODE_RE = re.compile(r"(?<=data )[0-9]{2,3}\b")


class LdapError(Exception):
    """Base class for all errors raised by this package."""


class ConnectError(LdapError):
    """The LDAP URL could not be turned into a server to talk to."""


class DirectoryOperationError(LdapError):
    """
    A directory operation finished with a failure result code.

    Attributes:
        code: The result code, or the AD sub-code recovered from the error string
        message: The error message, verbatim
        error_string: The server's diagnostic message, verbatim
    """

    def __init__(self, code: int, message: str, error_string: str = ""):
        super().__init__(message)
        self.code = code
        self.message = message
        self.error_string = error_string

    @property
    def name(self) -> str:
        return describe_code(self.code)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


def parse_ad_error_code(error_message: Optional[str]) -> Optional[int]:
    """
    Extract the AD-specific error code from an LDAP error message.

    Returns None unless exactly one sub-code is found; an ambiguous message
    is not guessed at.
    """
    if not error_message:
        return None
    matches: List[str] = AD_ERROR_CODE_RE.findall(error_message)
    return int(matches[0]) if len(matches) == 1 else None


def refine_code(code: int, error_string: Optional[str]) -> int:
    """Replace "invalid credentials" with the AD sub-code from ``error_string``, if any."""
    if code == ResultCode.INVALID_CREDENTIALS:
        ad_code = parse_ad_error_code(error_string)
        if ad_code is not None:
            return ad_code
    return code


def is_failure(code: int) -> bool:
    """Check whether a result code represents a failed operation."""
    return code not in NON_FAILURE_CODES


def describe_code(code: int) -> str:
    """Return a readable name for a result code or AD sub-code."""
    if code in AD_ERROR_CODES:
        return AD_ERROR_CODES[code]
    try:
        return ResultCode(code).name
    except ValueError:
        return f"UNKNOWN_{code}"


def verify(link: "Ldap") -> None:
    """
    Check the outcome of the operation that just completed on ``link``.

    An "invalid credentials" result is refined with the Active Directory
    sub-code when the extended error string carries exactly one. The link's
    errno() reflects the refined code afterwards.

    Raises:
        DirectoryOperationError: The (refined) code is not a non-failure code
    """
    message = link.error()
    error_string = link.get_option(Option.ERROR_STRING) or ""

    code = refine_code(link.errno(), error_string)
    if code != link.errno():
        link.outcome = replace(link.outcome, code=code)

    if is_failure(code):
        logger.warning("LDAP operation failed: {} ({}) {}", message, describe_code(code), error_string)
        raise DirectoryOperationError(code, message, error_string)
