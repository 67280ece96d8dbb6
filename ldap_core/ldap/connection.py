"""Ldap class wrapping an ldap3 connection."""

import ipaddress
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from ldap3 import (
    ALL_ATTRIBUTES,
    ANONYMOUS,
    BASE,
    DEREF_ALWAYS,
    DEREF_BASE,
    DEREF_NEVER,
    DEREF_SEARCH,
    LEVEL,
    MODIFY_ADD,
    MODIFY_DELETE,
    MODIFY_REPLACE,
    SASL,
    SIMPLE,
    SUBTREE,
    SYNC,
    Connection,
    Server,
)
from ldap3.core.exceptions import (
    LDAPCommunicationError,
    LDAPException,
    LDAPInvalidDnError,
    LDAPInvalidFilterError,
    LDAPStartTLSError,
)
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import escape_rdn, parse_dn
from ldap3.utils.log import EXTENDED, OFF, set_library_log_detail_level
from loguru import logger

from ..constants import (
    READ_ONLY_OPTIONS,
    SASL_MECHANISMS,
    Deref,
    Escape,
    ModifyBatch,
    Option,
    ResultCode,
    Scope,
)
from ..models import OperationOutcome, err_to_str
from .errors import ConnectError, DirectoryOperationError, verify
from .result import Result

SCOPES = {
    Scope.BASE: BASE,
    Scope.ONELEVEL: LEVEL,
    Scope.SUBTREE: SUBTREE,
}

DEREF_MODES = {
    Deref.NEVER: DEREF_NEVER,
    Deref.SEARCHING: DEREF_SEARCH,
    Deref.FINDING: DEREF_BASE,
    Deref.ALWAYS: DEREF_ALWAYS,
}

MODIFY_TYPES = {
    ModifyBatch.ADD: MODIFY_ADD,
    ModifyBatch.REMOVE: MODIFY_DELETE,
    ModifyBatch.REPLACE: MODIFY_REPLACE,
    ModifyBatch.REMOVE_ALL: MODIFY_DELETE,
}

SASL_OPTIONS = (Option.X_SASL_MECH, Option.X_SASL_REALM, Option.X_SASL_AUTHCID, Option.X_SASL_AUTHZID)

# ldap3 raises these before anything goes on the wire; they are recorded
# as the client-side result code the C library would have reported.
CLIENT_SIDE_ERRORS = (
    (LDAPCommunicationError, ResultCode.SERVER_DOWN),
    (LDAPStartTLSError, ResultCode.CONNECT_ERROR),
    (LDAPInvalidFilterError, ResultCode.FILTER_ERROR),
    (LDAPInvalidDnError, ResultCode.INVALID_DN_SYNTAX),
)


def is_ip_address(value: str) -> bool:
    """Check if a string is an IPv4 or IPv6 address."""
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def fqdn_to_base_dn(fqdn: str) -> str:
    """Convert FQDN to LDAP base DN (e.g., 'corp.example.com' -> 'DC=corp,DC=example,DC=com')"""
    return ",".join(f"DC={part}" for part in fqdn.split("."))


def dn_to_ufn(dn: str) -> str:
    """
    Convert a DN to User Friendly Naming format.

    'cn=John Doe,ou=People,dc=example,dc=com' -> 'John Doe, People, example.com'
    """
    components = parse_dn(dn)
    names = [value for _, value, _ in components]

    # Trailing domain components collapse into a dotted domain name
    domain: List[str] = []
    while components and components[-1][0].lower() == "dc":
        domain.insert(0, names.pop())
        components = components[:-1]
    if domain:
        names.append(".".join(domain))
    return ", ".join(names)


def explode_dn(dn: str, with_attrib: bool = False) -> List[str]:
    """Split a DN into its RDNs, with or without the attribute names."""
    return [f"{attr}={value}" if with_attrib else value for attr, value, _ in parse_dn(dn)]


def _escape_all(value: str) -> str:
    return "".join(f"\\{byte:02x}" for byte in value.encode("utf-8"))


def escape(value: str, ignore: str = "", flags: int = 0) -> str:
    """
    Escape a string for use in an LDAP filter or DN.

    Args:
        value: The value to escape
        ignore: Characters to leave untouched
        flags: Escape.FILTER or Escape.DN; anything else escapes every character
    """
    if flags == Escape.FILTER:
        escaper: Callable[[str], str] = escape_filter_chars
    elif flags == Escape.DN:
        escaper = escape_rdn
    else:
        escaper = _escape_all

    if not ignore:
        return escaper(value)
    parts = re.split(f"([{re.escape(ignore)}]+)", value)
    # Odd indexes hold the runs of ignored characters
    return "".join(part if i % 2 else (escaper(part) if part else "") for i, part in enumerate(parts))


def _client_side_code(error: LDAPException) -> Optional[ResultCode]:
    for error_class, code in CLIENT_SIDE_ERRORS:
        if isinstance(error, error_class):
            return code
    return None


def _values(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


class BaseLink:
    """
    Object wrapper for an ldap3 connection.

    Every directory operation is forwarded to ldap3, its result is recorded
    as the link's outcome and then verified; failures raise
    DirectoryOperationError. Not safe for concurrent use.

    Attributes:
        server: The ldap3 Server object (None until connect() is called)
        connection: The ldap3 Connection object (None until connect() is called)
        outcome: The OperationOutcome of the last operation
    """

    result_class = Result

    # Static helpers
    dn_to_ufn = staticmethod(dn_to_ufn)
    err_to_str = staticmethod(err_to_str)
    explode_dn = staticmethod(explode_dn)
    escape = staticmethod(escape)

    def __init__(self, url: str = None, client_strategy: str = SYNC):
        """
        Create a new instance, connecting to ``url`` when given.

        Args:
            url: LDAP URL of the server (e.g. 'ldap://dc01.corp.local:389')
            client_strategy: ldap3 client strategy (MOCK_SYNC in tests)
        """
        self.client_strategy = client_strategy
        self.server: Optional[Server] = None
        self.connection: Optional[Connection] = None
        self.outcome = OperationOutcome()

        self._options: Dict[Option, Any] = {
            Option.DEREF: Deref.NEVER,
            Option.SIZELIMIT: 0,
            Option.TIMELIMIT: 0,
            Option.RESTART: False,
            Option.SERVER_CONTROLS: [],
            Option.CLIENT_CONTROLS: [],
            Option.DEBUG_LEVEL: 0,
        }
        self._sasl: Dict[Option, Optional[str]] = {}
        self._paged: Optional[Dict[str, Any]] = None

        if url:
            self.connect(url)

    def __str__(self) -> str:
        return self.get_option(Option.HOST_NAME) if self.connection is not None else ""

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Context manager exit."""
        if self.connection is not None:
            self.unbind()
        return False

    def get_resource(self) -> Optional[Connection]:
        """Get the underlying ldap3 Connection."""
        return self.connection

    def connect(self, url: str):
        """
        Prepare a connection to an LDAP server. Returns self for chaining.

        No network traffic happens until the first operation, so an
        unreachable server surfaces from bind() or search() instead. A
        connection prepared earlier is unbound first.

        Raises:
            ConnectError: The URL does not describe a usable server
        """
        if self.connection is not None:
            self.unbind()

        try:
            self.server = Server(url)
        except LDAPException as e:
            raise ConnectError(f"Unable to connect to ldap server {url}: {e}") from e

        # Sane defaults for LDAPv3 without referral chasing
        self.connection = Connection(
            self.server,
            version=3,
            auto_referrals=False,
            raise_exceptions=False,
            client_strategy=self.client_strategy,
        )
        self.outcome = OperationOutcome()
        logger.debug("Prepared connection to {}", self)
        return self

    def _require_connection(self) -> Connection:
        if self.connection is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self.connection

    def _execute(self, name: str, operation: Callable[..., Any], *args, **kwargs) -> Any:
        """Run one ldap3 operation, record its outcome and verify it."""
        conn = self._require_connection()
        logger.debug("LDAP {} {}", name, args[0] if args else "")

        try:
            # The first operation on a link opens the socket
            if conn.closed:
                conn.open()
            retval = operation(*args, **kwargs)
        except LDAPException as e:
            code = _client_side_code(e)
            if code is None:
                raise
            self.outcome = OperationOutcome(code=code, message=err_to_str(code), error_string=str(e))
            try:
                verify(self)
            except DirectoryOperationError as failure:
                raise failure from e
            raise
        else:
            self.outcome = OperationOutcome.from_ldap3_result(conn.result)
            verify(self)
        return retval

    def error(self) -> str:
        """Return the error message of the last operation."""
        return self.outcome.message

    def errno(self) -> int:
        """Return the error number of the last operation."""
        return self.outcome.code

    def bind(self, bind_dn: str = None, password: str = None):
        """
        Bind to the directory. Anonymous when neither DN nor password is given.
        Returns self for chaining.
        """
        conn = self._require_connection()
        if bind_dn and not password:
            raise ValueError("A password is required to bind as a DN; omit both for an anonymous bind")

        conn.authentication = SIMPLE if bind_dn else ANONYMOUS
        conn.user = bind_dn
        conn.password = password
        self._execute("bind", conn.bind)
        return self

    def sasl_bind(
        self,
        bind_dn: str = None,
        password: str = None,
        mech: str = None,
        realm: str = None,
        authc_id: str = None,
        authz_id: str = None,
    ):
        """
        Bind to the directory using SASL. Returns self for chaining.

        Supported mechanisms: EXTERNAL, DIGEST-MD5, GSSAPI and PLAIN. The
        authentication identity defaults to ``bind_dn``.
        """
        conn = self._require_connection()
        mech = (mech or "EXTERNAL").upper()
        if mech not in SASL_MECHANISMS:
            raise ValueError(f"Unsupported SASL mechanism: {mech}")

        authc_id = authc_id or bind_dn
        if mech == "EXTERNAL":
            credentials = (authz_id,) if authz_id else None
        elif mech == "DIGEST-MD5":
            credentials = (realm, authc_id, password, authz_id)
        elif mech == "GSSAPI":
            credentials = (None, authz_id) if authz_id else None
        else:
            credentials = (authz_id or "", authc_id, password)

        conn.authentication = SASL
        conn.sasl_mechanism = mech
        conn.sasl_credentials = credentials
        self._sasl = {
            Option.X_SASL_MECH: mech,
            Option.X_SASL_REALM: realm,
            Option.X_SASL_AUTHCID: authc_id,
            Option.X_SASL_AUTHZID: authz_id,
        }
        self._execute("sasl_bind", conn.bind)
        return self

    def start_tls(self):
        """Start TLS on the connection. Returns self for chaining."""
        conn = self._require_connection()
        self._execute("start_tls", conn.start_tls)
        return self

    def unbind(self) -> None:
        """Unbind from the directory. The link cannot be used afterwards."""
        conn = self._require_connection()
        logger.debug("LDAP unbind {}", self)
        conn.unbind()
        self.connection = None

    def close(self) -> None:
        """Alias of unbind()."""
        self.unbind()

    def add(self, dn: str, entry: Dict[str, Any]):
        """Add an entry to the directory. Returns self for chaining."""
        conn = self._require_connection()
        self._execute("add", conn.add, dn, attributes=entry)
        return self

    def compare(self, dn: str, attribute: str, value: Any) -> bool:
        """Compare an attribute value of the entry at ``dn``. True when it matches."""
        conn = self._require_connection()
        self._execute("compare", conn.compare, dn, attribute, value)
        return self.outcome.code == ResultCode.COMPARE_TRUE

    def delete(self, dn: str):
        """Delete an entry from the directory. Returns self for chaining."""
        conn = self._require_connection()
        self._execute("delete", conn.delete, dn)
        return self

    def _modify(self, name: str, dn: str, changes: Dict[str, List[Any]]):
        conn = self._require_connection()
        self._execute(name, conn.modify, dn, changes)
        return self

    def mod_add(self, dn: str, entry: Dict[str, Any]):
        """Add attribute values to the current attributes."""
        return self._modify("mod_add", dn, {attr: [(MODIFY_ADD, _values(v))] for attr, v in entry.items()})

    def mod_delete(self, dn: str, entry: Dict[str, Any]):
        """Delete attribute values; an empty value list removes the attribute."""
        changes = {attr: [(MODIFY_DELETE, _values(v) if v else [])] for attr, v in entry.items()}
        return self._modify("mod_delete", dn, changes)

    def mod_del(self, dn: str, entry: Dict[str, Any]):
        """Compatibility alias of mod_delete()."""
        return self.mod_delete(dn, entry)

    def mod_replace(self, dn: str, entry: Dict[str, Any]):
        """Replace attribute values with new ones."""
        return self._modify("mod_replace", dn, {attr: [(MODIFY_REPLACE, _values(v))] for attr, v in entry.items()})

    def modify(self, dn: str, entry: Dict[str, Any]):
        """Modify an entry; the given attributes replace the current ones."""
        return self._modify("modify", dn, {attr: [(MODIFY_REPLACE, _values(v))] for attr, v in entry.items()})

    def modify_batch(self, dn: str, modifications: Iterable[Dict[str, Any]]):
        """
        Apply a list of modifications to one entry in a single operation.

        Example:
            link.modify_batch("cn=John Doe,dc=example,dc=com", [
                {"attrib": "telephoneNumber", "modtype": ModifyBatch.ADD, "values": ["+420 777 111 222"]},
                {"attrib": "description", "modtype": ModifyBatch.REMOVE_ALL},
            ])
        """
        changes: Dict[str, List[Any]] = {}
        for modification in modifications:
            try:
                attrib = modification["attrib"]
                modtype = ModifyBatch(modification["modtype"])
            except (KeyError, ValueError) as e:
                raise ValueError(f"Invalid modification {modification!r}: {e}") from e

            values = modification.get("values")
            if modtype == ModifyBatch.REMOVE_ALL:
                if values:
                    raise ValueError(f"REMOVE_ALL modification of '{attrib}' must not carry values")
                values = []
            elif not values:
                raise ValueError(f"Modification of '{attrib}' requires a non-empty 'values' list")

            changes.setdefault(attrib, []).append((MODIFY_TYPES[modtype], _values(values)))

        return self._modify("modify_batch", dn, changes)

    def rename(self, dn: str, new_rdn: str, new_parent: Optional[str], delete_old_rdn: bool):
        """Modify the name of an entry, optionally moving it under ``new_parent``."""
        conn = self._require_connection()
        self._execute(
            "rename",
            conn.modify_dn,
            dn,
            new_rdn,
            delete_old_dn=delete_old_rdn,
            new_superior=new_parent or None,
        )
        return self

    def paged_result(self, page_size: int, is_critical: bool = False, cookie: Union[bytes, str] = b""):
        """Send the paged results control with the next search. Returns self for chaining."""
        self._paged = {
            "paged_size": page_size,
            "paged_criticality": is_critical,
            "paged_cookie": cookie or None,
        }
        return self

    def _search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Optional[List[str]] = None,
        scope: Scope = Scope.SUBTREE,
        attrs_only: bool = False,
        size_limit: int = 0,
        time_limit: int = 0,
        deref: Optional[Deref] = None,
    ) -> Result:
        conn = self._require_connection()
        try:
            search_scope = SCOPES[Scope(scope)]
        except ValueError as e:
            raise ValueError(f"Unknown search scope: {scope!r}") from e

        kwargs: Dict[str, Any] = {
            "search_scope": search_scope,
            "dereference_aliases": DEREF_MODES[Deref(self._options[Option.DEREF] if deref is None else deref)],
            "attributes": attributes or ALL_ATTRIBUTES,
            "size_limit": size_limit or self._options[Option.SIZELIMIT],
            "time_limit": time_limit or self._options[Option.TIMELIMIT],
            "types_only": attrs_only,
            "controls": self._options[Option.SERVER_CONTROLS] or None,
        }
        if self._paged:
            kwargs.update(self._paged)
            self._paged = None

        self._execute("search", conn.search, base_dn, search_filter, **kwargs)
        return self.result_class(self, conn.response, conn.result)

    def get_option(self, option: int) -> Any:
        """Get the current value of a connection option."""
        option = Option(option)
        if option in SASL_OPTIONS:
            return self._sasl.get(option)
        if option == Option.ERROR_NUMBER:
            return self.outcome.code
        if option == Option.ERROR_STRING:
            return self.outcome.error_string
        if option == Option.MATCHED_DN:
            return self.outcome.matched_dn
        if option in self._options:
            return self._options[option]

        conn = self._require_connection()
        if option == Option.HOST_NAME:
            return f"{self.server.host}:{self.server.port}"
        if option == Option.PROTOCOL_VERSION:
            return conn.version
        if option == Option.REFERRALS:
            return conn.auto_referrals
        return self.server.connect_timeout  # Option.NETWORK_TIMEOUT

    def set_option(self, option: int, value: Any):
        """Set the value of a connection option. Returns self for chaining."""
        option = Option(option)
        if option in READ_ONLY_OPTIONS:
            raise ValueError(f"Option {option.name} is read-only")

        conn = self._require_connection()
        if option == Option.PROTOCOL_VERSION:
            if value not in (2, 3):
                raise ValueError(f"Unsupported protocol version: {value}")
            conn.version = value
        elif option == Option.REFERRALS:
            conn.auto_referrals = bool(value)
        elif option == Option.NETWORK_TIMEOUT:
            self.server.connect_timeout = value
        elif option == Option.DEREF:
            self._options[option] = Deref(value)
        elif option in (Option.SERVER_CONTROLS, Option.CLIENT_CONTROLS):
            self._options[option] = list(value or [])
        elif option == Option.DEBUG_LEVEL:
            self._options[option] = int(value)
            set_library_log_detail_level(EXTENDED if value else OFF)
        else:
            self._options[option] = value
        logger.debug("LDAP option {} set to {!r}", option.name, value)
        return self


class Ldap(BaseLink):
    """
    Object wrapper for an LDAP connection.

    Example:
        with Ldap('ldap://dc01.corp.local') as link:
            link.bind('cn=admin,dc=corp,dc=local', 'password')
            entries = link.search('dc=corp,dc=local', '(objectClass=user)', ['cn']).get_entries()
    """

    def ldap_search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Optional[List[str]] = None,
        scope: Scope = Scope.SUBTREE,
        attrs_only: bool = False,
        size_limit: int = 0,
        time_limit: int = 0,
        deref: Optional[Deref] = None,
    ) -> Result:
        """
        Search the directory.

        Args:
            base_dn: The base DN for the search
            search_filter: LDAP filter string (an empty filter is not allowed)
            attributes: Attributes to retrieve (all when empty)
            scope: Scope.SUBTREE, Scope.ONELEVEL or Scope.BASE
            attrs_only: Retrieve attribute types only
            size_limit: Maximum number of entries (0 uses Option.SIZELIMIT)
            time_limit: Maximum seconds spent searching (0 uses Option.TIMELIMIT)
            deref: How aliases are dereferenced (None uses Option.DEREF)

        Returns:
            Result wrapping the entries found
        """
        return self._search(base_dn, search_filter, attributes, scope, attrs_only, size_limit, time_limit, deref)

    def read(self, base_dn: str, search_filter: str, attributes: Optional[List[str]] = None, **kwargs) -> Result:
        """Search with Scope.BASE; see ldap_search()."""
        return self.ldap_search(base_dn, search_filter, attributes, Scope.BASE, **kwargs)

    def list(self, base_dn: str, search_filter: str, attributes: Optional[List[str]] = None, **kwargs) -> Result:
        """Search with Scope.ONELEVEL; see ldap_search()."""
        return self.ldap_search(base_dn, search_filter, attributes, Scope.ONELEVEL, **kwargs)

    def search(self, base_dn: str, search_filter: str, attributes: Optional[List[str]] = None, **kwargs) -> Result:
        """Search with Scope.SUBTREE; see ldap_search()."""
        return self.ldap_search(base_dn, search_filter, attributes, Scope.SUBTREE, **kwargs)
