"""
Legacy LinkResource / ResultResource interface.

Kept for code written against the older names: one scope-parameterised
search() instead of read()/list()/search(), and get_referrals() on results.
Errors and constants are shared with Ldap.
"""

from typing import Dict, List, Optional

from ..constants import Deref, Scope
from .connection import BaseLink
from .result import BaseResult


class ResultResource(BaseResult):
    """Search result of a LinkResource."""

    def get_referrals(self) -> List[str]:
        """Extract referral URIs returned by the server, if any."""
        return self._all_referrals()

    def paged_result_response(self) -> Dict[str, Optional[object]]:
        """Retrieve the paged results control as {'cookie': ..., 'estimated': ...}."""
        return self._paged_response()


class LinkResource(BaseLink):
    """Legacy wrapper for an LDAP connection."""

    result_class = ResultResource

    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Optional[List[str]] = None,
        scope: Scope = Scope.SUBTREE,
        attrs_only: bool = False,
        size_limit: int = 0,
        time_limit: int = 0,
        deref: Optional[Deref] = None,
    ) -> ResultResource:
        """Search the directory; ``scope`` selects base, one-level or subtree."""
        return self._search(base_dn, search_filter, attributes, scope, attrs_only, size_limit, time_limit, deref)
