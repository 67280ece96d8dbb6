"""Data models for directory operations and connection settings."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from .constants import RESULT_MESSAGES, ResultCode


@dataclass(frozen=True)
class OperationOutcome:
    """The code and message left behind by the last directory operation."""
    code: int = ResultCode.SUCCESS
    message: str = RESULT_MESSAGES[ResultCode.SUCCESS]
    error_string: str = ""  # Server diagnostic text, where AD hides its sub-codes
    matched_dn: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_ldap3_result(cls, result: Optional[Dict[str, Any]]) -> "OperationOutcome":
        """Build an outcome from an ldap3 ``Connection.result`` dictionary."""
        if not result:
            return cls()
        code = int(result.get("result", ResultCode.SUCCESS))
        return cls(
            code=code,
            message=err_to_str(code),
            error_string=result.get("message") or "",
            matched_dn=result.get("dn") or "",
        )


def err_to_str(code: int) -> str:
    """Convert an LDAP result code into its error message."""
    try:
        return RESULT_MESSAGES[ResultCode(code)]
    except (ValueError, KeyError):
        return "Unknown error"


@dataclass
class ConnectionSettings:
    """Connection and search defaults, as read from a config file or the CLI."""
    url: str
    bind_dn: Optional[str] = None
    password: Optional[str] = None
    start_tls: bool = False
    timeout: Optional[int] = None
    base_dn: Optional[str] = None
    size_limit: int = 0
    time_limit: int = 0
    attributes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ConnectionSettings":
        known = {k: v for k, v in d.items() if k in cls.__dataclass_fields__ and v is not None}
        return cls(**known)
