"""Shared fixtures: an Ldap link backed by ldap3's in-memory mock server."""

import pytest
from ldap3 import MOCK_SYNC

from ldap_core.constants import ResultCode
from ldap_core.ldap import Ldap, LinkResource

from .constants import ADMIN_DN, ADMIN_PASSWORD, BASE_DN, PEOPLE_DN


def populate(link) -> None:
    strategy = link.connection.strategy
    strategy.add_entry(BASE_DN, {"objectClass": ["top", "domain"], "dc": "example"})
    strategy.add_entry(ADMIN_DN, {
        "objectClass": ["person"], "cn": "admin", "sn": "Admin", "userPassword": ADMIN_PASSWORD,
    })
    strategy.add_entry(PEOPLE_DN, {"objectClass": ["organizationalUnit"], "ou": "people"})
    strategy.add_entry(f"cn=john,{PEOPLE_DN}", {
        "objectClass": ["person"], "cn": "john", "sn": "Doe", "mail": "john@example.com",
    })
    strategy.add_entry(f"cn=alice,{PEOPLE_DN}", {
        "objectClass": ["person"], "cn": "alice", "sn": "Anders", "mail": "alice@example.com",
    })


@pytest.fixture
def link():
    link = Ldap("ldap://mock.example.com", client_strategy=MOCK_SYNC)
    populate(link)
    yield link
    if link.connection is not None:
        link.unbind()


@pytest.fixture
def legacy_link():
    link = LinkResource("ldap://mock.example.com", client_strategy=MOCK_SYNC)
    populate(link)
    yield link
    if link.connection is not None:
        link.unbind()


@pytest.fixture
def truncating_link(link, monkeypatch):
    """A link whose searches come back with sizeLimitExceeded, as from a server enforcing a limit."""
    connection = link.connection
    search = connection.search

    def search_and_truncate(*args, **kwargs):
        status = search(*args, **kwargs)
        connection.result = dict(
            connection.result, result=ResultCode.SIZELIMIT_EXCEEDED, description="sizeLimitExceeded",
        )
        return status

    monkeypatch.setattr(connection, "search", search_and_truncate)
    return link
