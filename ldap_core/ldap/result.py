"""Search results returned by Ldap.ldap_search()."""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from .connection import BaseLink

# Paged results control (RFC 2696)
PAGED_RESULTS_OID = "1.2.840.113556.1.4.319"


class BaseResult:
    """
    The entries and references of one search.

    The ldap3 response is captured when the search completes, so later
    operations on the same link do not affect it.
    """

    def __init__(self, link: "BaseLink", response: Optional[List[Dict[str, Any]]], result: Optional[Dict[str, Any]]):
        self.link = link
        response = response or []
        result = result or {}
        self._entries = [item for item in response if item.get("type") == "searchResEntry"]
        self._references = [
            uri for item in response if item.get("type") == "searchResRef" for uri in item.get("uri") or []
        ]
        self._referrals = list(result.get("referrals") or [])
        self._controls = result.get("controls") or {}

    def count_entries(self) -> int:
        """Count the number of entries in the result."""
        return len(self._entries)

    def get_entries(self) -> List[Dict[str, Any]]:
        """
        Get all result entries.

        Returns:
            List of {"dn": ..., "attributes": {name: value(s)}} dictionaries
        """
        return [{"dn": entry["dn"], "attributes": dict(entry["attributes"])} for entry in self._entries]

    def sort(self, by: str):
        """Sort the entries on the first value of an attribute. Returns self for chaining."""
        def key(entry: Dict[str, Any]):
            value = entry["attributes"].get(by)
            if isinstance(value, list):
                value = value[0] if value else None
            # Entries without the attribute sort first
            return (value is not None, str(value) if value is not None else "")

        self._entries.sort(key=key)
        return self

    def free_result(self) -> None:
        """Release the captured entries. The result cannot be used afterwards."""
        self._entries = []
        self._references = []
        self._referrals = []
        self._controls = {}

    def _paged_response(self) -> Dict[str, Any]:
        value = self._controls.get(PAGED_RESULTS_OID, {}).get("value") or {}
        return {"cookie": value.get("cookie"), "estimated": value.get("size")}

    def _all_referrals(self) -> List[str]:
        return self._references + self._referrals


class Result(BaseResult):
    """Search result of an Ldap link."""

    def parse_reference(self) -> List[str]:
        """Extract referral URIs returned by the server, if any."""
        return self._all_referrals()

    def paged_result_response(self, key: str = None) -> Any:
        """
        Retrieve the paged results control of the response.

        Args:
            key: Return only 'cookie' or 'estimated'

        Returns:
            The value of ``key``, or a dictionary with both keys for any other key
        """
        response = self._paged_response()
        return response[key] if key in response else response
