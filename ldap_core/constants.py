"""Constants used throughout the package."""

from enum import IntEnum
from pathlib import Path


class Colors:
    """ANSI color codes for terminal output."""
    NC = '\033[0m'
    RED = '\033[0;31m'
    BLUE = '\033[0;34m'
    GREEN = '\033[0;32m'
    LBLUE = '\033[1;34m'
    ORANGE = '\033[0;33m'

    @classmethod
    def disable(cls):
        """Disable colors (for non-TTY output)."""
        cls.NC = cls.RED = cls.BLUE = cls.GREEN = cls.LBLUE = cls.ORANGE = ''


class ResultCode(IntEnum):
    """LDAP result codes, plus the Active Directory sub-codes hidden in bind errors."""
    # Client side errors, numbered as in the OpenLDAP client library
    CONNECT_ERROR = -11
    FILTER_ERROR = -7
    SERVER_DOWN = -1

    SUCCESS = 0
    OPERATIONS_ERROR = 1
    PROTOCOL_ERROR = 2
    TIMELIMIT_EXCEEDED = 3
    SIZELIMIT_EXCEEDED = 4
    COMPARE_FALSE = 5
    COMPARE_TRUE = 6
    AUTH_METHOD_NOT_SUPPORTED = 7
    STRONG_AUTH_REQUIRED = 8
    REFERRAL = 10
    ADMINLIMIT_EXCEEDED = 11
    UNAVAILABLE_CRITICAL_EXTENSION = 12
    CONFIDENTIALITY_REQUIRED = 13
    SASL_BIND_IN_PROGRESS = 14
    NO_SUCH_ATTRIBUTE = 16
    UNDEFINED_TYPE = 17
    INAPPROPRIATE_MATCHING = 18
    CONSTRAINT_VIOLATION = 19
    TYPE_OR_VALUE_EXISTS = 20
    INVALID_SYNTAX = 21
    NO_SUCH_OBJECT = 32
    ALIAS_PROBLEM = 33
    INVALID_DN_SYNTAX = 34
    IS_LEAF = 35
    ALIAS_DEREF_PROBLEM = 36
    INAPPROPRIATE_AUTH = 48
    INVALID_CREDENTIALS = 49
    ERROR_TOO_MANY_CONTEXT_IDS = 49
    INSUFFICIENT_ACCESS = 50
    BUSY = 51
    UNAVAILABLE = 52
    UNWILLING_TO_PERFORM = 53
    LOOP_DETECT = 54
    NAMING_VIOLATION = 64
    OBJECT_CLASS_VIOLATION = 65
    NOT_ALLOWED_ON_NONLEAF = 66
    NOT_ALLOWED_ON_RDN = 67
    ALREADY_EXISTS = 68
    NO_OBJECT_CLASS_MODS = 69
    RESULTS_TOO_LARGE = 70
    AFFECTS_MULTIPLE_DSAS = 71
    OTHER = 80

    # Active Directory specific error codes
    USER_NOT_FOUND = 525
    NOT_PERMITTED_TO_LOGON_AT_THIS_TIME = 530
    RESTRICTED_TO_SPECIFIC_MACHINES = 531
    PASSWORD_EXPIRED = 532
    ACCOUNT_DISABLED = 533
    ACCOUNT_EXPIRED = 701
    USER_MUST_RESET_PASSWORD = 773
    USER_ACCOUNT_LOCKED = 775


# Result codes that do not represent a failed operation; everything else does
NON_FAILURE_CODES = frozenset({
    ResultCode.SUCCESS,
    ResultCode.SIZELIMIT_EXCEEDED,
    ResultCode.COMPARE_FALSE,
    ResultCode.COMPARE_TRUE,
})

# Messages for each result code, worded like the OpenLDAP client library
RESULT_MESSAGES = {
    ResultCode.CONNECT_ERROR: "Connect error",
    ResultCode.FILTER_ERROR: "Bad search filter",
    ResultCode.SERVER_DOWN: "Can't contact LDAP server",
    ResultCode.SUCCESS: "Success",
    ResultCode.OPERATIONS_ERROR: "Operations error",
    ResultCode.PROTOCOL_ERROR: "Protocol error",
    ResultCode.TIMELIMIT_EXCEEDED: "Time limit exceeded",
    ResultCode.SIZELIMIT_EXCEEDED: "Size limit exceeded",
    ResultCode.COMPARE_FALSE: "Compare False",
    ResultCode.COMPARE_TRUE: "Compare True",
    ResultCode.AUTH_METHOD_NOT_SUPPORTED: "Authentication method not supported",
    ResultCode.STRONG_AUTH_REQUIRED: "Strong(er) authentication required",
    ResultCode.REFERRAL: "Referral",
    ResultCode.ADMINLIMIT_EXCEEDED: "Administrative limit exceeded",
    ResultCode.UNAVAILABLE_CRITICAL_EXTENSION: "Critical extension is unavailable",
    ResultCode.CONFIDENTIALITY_REQUIRED: "Confidentiality required",
    ResultCode.SASL_BIND_IN_PROGRESS: "SASL bind in progress",
    ResultCode.NO_SUCH_ATTRIBUTE: "No such attribute",
    ResultCode.UNDEFINED_TYPE: "Undefined attribute type",
    ResultCode.INAPPROPRIATE_MATCHING: "Inappropriate matching",
    ResultCode.CONSTRAINT_VIOLATION: "Constraint violation",
    ResultCode.TYPE_OR_VALUE_EXISTS: "Type or value exists",
    ResultCode.INVALID_SYNTAX: "Invalid syntax",
    ResultCode.NO_SUCH_OBJECT: "No such object",
    ResultCode.ALIAS_PROBLEM: "Alias problem",
    ResultCode.INVALID_DN_SYNTAX: "Invalid DN syntax",
    ResultCode.IS_LEAF: "Entry is a leaf",
    ResultCode.ALIAS_DEREF_PROBLEM: "Alias dereferencing problem",
    ResultCode.INAPPROPRIATE_AUTH: "Inappropriate authentication",
    ResultCode.INVALID_CREDENTIALS: "Invalid credentials",
    ResultCode.INSUFFICIENT_ACCESS: "Insufficient access",
    ResultCode.BUSY: "Server is busy",
    ResultCode.UNAVAILABLE: "Server is unavailable",
    ResultCode.UNWILLING_TO_PERFORM: "Server is unwilling to perform",
    ResultCode.LOOP_DETECT: "Loop detected",
    ResultCode.NAMING_VIOLATION: "Naming violation",
    ResultCode.OBJECT_CLASS_VIOLATION: "Object class violation",
    ResultCode.NOT_ALLOWED_ON_NONLEAF: "Operation not allowed on non-leaf",
    ResultCode.NOT_ALLOWED_ON_RDN: "Operation not allowed on RDN",
    ResultCode.ALREADY_EXISTS: "Already exists",
    ResultCode.NO_OBJECT_CLASS_MODS: "Cannot modify object class",
    ResultCode.RESULTS_TOO_LARGE: "Results too large",
    ResultCode.AFFECTS_MULTIPLE_DSAS: "Operation affects multiple DSAs",
    ResultCode.OTHER: "Other (e.g., implementation specific) error",
}


class Scope(IntEnum):
    """Search scopes. read(), list() and search() each use one of these."""
    BASE = 0
    ONELEVEL = 1
    SUBTREE = 2


class Deref(IntEnum):
    """Alias dereferencing modes for searches."""
    NEVER = 0
    SEARCHING = 1
    FINDING = 2
    ALWAYS = 3


class Option(IntEnum):
    """Connection options, numbered as in the OpenLDAP client library."""
    DEREF = 0x02
    SIZELIMIT = 0x03
    TIMELIMIT = 0x04
    REFERRALS = 0x08
    RESTART = 0x09
    PROTOCOL_VERSION = 0x11
    SERVER_CONTROLS = 0x12
    CLIENT_CONTROLS = 0x13
    HOST_NAME = 0x30
    ERROR_NUMBER = 0x31
    ERROR_STRING = 0x32
    MATCHED_DN = 0x33
    DEBUG_LEVEL = 0x5001
    NETWORK_TIMEOUT = 0x5005

    # SASL parameters, as set by sasl_bind()
    X_SASL_MECH = 0x6100
    X_SASL_REALM = 0x6101
    X_SASL_AUTHCID = 0x6102
    X_SASL_AUTHZID = 0x6103


# Options that only report the state of the last operation or the server
READ_ONLY_OPTIONS = frozenset({
    Option.HOST_NAME,
    Option.ERROR_NUMBER,
    Option.ERROR_STRING,
    Option.MATCHED_DN,
    Option.X_SASL_MECH,
    Option.X_SASL_REALM,
    Option.X_SASL_AUTHCID,
    Option.X_SASL_AUTHZID,
})


class ModifyBatch(IntEnum):
    """Modification types accepted by modify_batch()."""
    ADD = 0x01
    REMOVE = 0x02
    REPLACE = 0x03
    REMOVE_ALL = 0x12


class Escape(IntEnum):
    """Contexts for escape()."""
    FILTER = 0x01
    DN = 0x02


SASL_MECHANISMS = ("EXTERNAL", "DIGEST-MD5", "GSSAPI", "PLAIN")

# Default configuration file location
DEFAULT_CONFIG_PATH = Path.home() / ".ldapcore" / "ldapcore.ini"
