"""Tests for the Ldap link against ldap3's mock server."""

import pytest
from ldap3 import DEREF_ALWAYS, DEREF_NEVER
from ldap3.core.exceptions import LDAPInvalidFilterError

from ldap_core.constants import Deref, ModifyBatch, Option, ResultCode, Scope
from ldap_core.ldap import ConnectError, DirectoryOperationError, Ldap, Result

from .constants import ADMIN_DN, ADMIN_PASSWORD, BASE_DN, PEOPLE_DN


def test_new_link_reports_success() -> None:
    link = Ldap()
    assert link.errno() == 0
    assert link.error() == "Success"
    assert link.get_resource() is None


def test_operations_require_connection() -> None:
    with pytest.raises(RuntimeError):
        Ldap().bind()


def test_connect_rejects_bad_url() -> None:
    with pytest.raises(ConnectError):
        Ldap("ldap://mock.example.com:notaport")


def test_str_is_host_and_port(link) -> None:
    assert str(link) == "mock.example.com:389"


def test_connect_defaults(link) -> None:
    assert link.get_option(Option.PROTOCOL_VERSION) == 3
    assert link.get_option(Option.REFERRALS) is False


def test_bind(link) -> None:
    assert link.bind(ADMIN_DN, ADMIN_PASSWORD) is link
    assert link.errno() == ResultCode.SUCCESS


def test_anonymous_bind(link) -> None:
    link.bind()
    assert link.errno() == 0


def test_bind_with_wrong_password(link) -> None:
    with pytest.raises(DirectoryOperationError) as excinfo:
        link.bind(ADMIN_DN, "wrong")
    assert excinfo.value.code == ResultCode.INVALID_CREDENTIALS
    assert link.errno() == 49
    assert link.error() == "Invalid credentials"


def test_bind_dn_without_password(link) -> None:
    with pytest.raises(ValueError):
        link.bind(ADMIN_DN)


def test_sasl_bind_rejects_unknown_mechanism(link) -> None:
    with pytest.raises(ValueError):
        link.sasl_bind(mech="CRAM-MD5")


def test_search_scopes(link) -> None:
    link.bind(ADMIN_DN, ADMIN_PASSWORD)

    subtree = link.search(BASE_DN, "(objectClass=person)", ["cn"])
    assert isinstance(subtree, Result)
    assert subtree.count_entries() == 3

    onelevel = link.list(PEOPLE_DN, "(objectClass=person)", ["cn"])
    assert onelevel.count_entries() == 2

    base = link.read(f"cn=john,{PEOPLE_DN}", "(objectClass=*)", ["mail"])
    entries = base.get_entries()
    assert len(entries) == 1
    assert entries[0]["dn"] == f"cn=john,{PEOPLE_DN}"
    assert "john@example.com" in entries[0]["attributes"]["mail"]


def test_ldap_search_with_scope(link) -> None:
    result = link.ldap_search(PEOPLE_DN, "(cn=alice)", ["sn"], Scope.ONELEVEL)
    assert result.count_entries() == 1


def test_search_rejects_unknown_scope(link) -> None:
    with pytest.raises(ValueError):
        link.ldap_search(BASE_DN, "(objectClass=*)", [], scope=7)


def test_search_sort(link) -> None:
    result = link.list(PEOPLE_DN, "(objectClass=person)", ["cn"]).sort("cn")
    names = [entry["dn"] for entry in result.get_entries()]
    assert names == [f"cn=alice,{PEOPLE_DN}", f"cn=john,{PEOPLE_DN}"]


def test_search_missing_base(link) -> None:
    with pytest.raises(DirectoryOperationError) as excinfo:
        link.read(f"ou=nowhere,{BASE_DN}", "(objectClass=*)")
    assert excinfo.value.code == ResultCode.NO_SUCH_OBJECT
    assert link.errno() == 32


def test_search_invalid_filter(link) -> None:
    with pytest.raises(DirectoryOperationError) as excinfo:
        link.search(BASE_DN, "(cn=john")
    assert excinfo.value.code == ResultCode.FILTER_ERROR
    assert link.error() == "Bad search filter"
    assert isinstance(excinfo.value.__cause__, LDAPInvalidFilterError)


def test_outcome_follows_last_operation(link) -> None:
    with pytest.raises(DirectoryOperationError):
        link.bind(ADMIN_DN, "wrong")
    assert link.errno() == 49

    link.bind(ADMIN_DN, ADMIN_PASSWORD)
    assert link.errno() == 0


def test_compare(link) -> None:
    link.bind(ADMIN_DN, ADMIN_PASSWORD)
    assert link.compare(f"cn=john,{PEOPLE_DN}", "sn", "Doe") is True
    assert link.errno() == ResultCode.COMPARE_TRUE
    assert link.compare(f"cn=john,{PEOPLE_DN}", "sn", "Smith") is False
    assert link.errno() == ResultCode.COMPARE_FALSE


def test_add_and_delete(link) -> None:
    link.bind(ADMIN_DN, ADMIN_PASSWORD)
    dn = f"cn=bob,{PEOPLE_DN}"

    assert link.add(dn, {"objectClass": ["person"], "cn": "bob", "sn": "Builder"}) is link
    assert link.read(dn, "(objectClass=*)").count_entries() == 1

    assert link.delete(dn) is link
    with pytest.raises(DirectoryOperationError) as excinfo:
        link.read(dn, "(objectClass=*)")
    assert excinfo.value.code == ResultCode.NO_SUCH_OBJECT


def test_add_existing_entry(link) -> None:
    link.bind(ADMIN_DN, ADMIN_PASSWORD)
    with pytest.raises(DirectoryOperationError) as excinfo:
        link.add(f"cn=john,{PEOPLE_DN}", {"objectClass": ["person"], "cn": "john", "sn": "Doe"})
    assert excinfo.value.code == ResultCode.ALREADY_EXISTS


def test_modifications(link) -> None:
    link.bind(ADMIN_DN, ADMIN_PASSWORD)
    dn = f"cn=john,{PEOPLE_DN}"

    link.mod_add(dn, {"description": "first"})
    link.mod_replace(dn, {"sn": "Smith"})
    attributes = link.read(dn, "(objectClass=*)").get_entries()[0]["attributes"]
    assert "first" in attributes["description"]
    assert "Smith" in attributes["sn"]

    link.mod_del(dn, {"description": "first"})
    attributes = link.read(dn, "(objectClass=*)").get_entries()[0]["attributes"]
    assert "first" not in attributes.get("description", [])


def test_modify_batch(link) -> None:
    link.bind(ADMIN_DN, ADMIN_PASSWORD)
    dn = f"cn=alice,{PEOPLE_DN}"

    link.modify_batch(dn, [
        {"attrib": "telephoneNumber", "modtype": ModifyBatch.ADD, "values": ["+420 777 111 222"]},
        {"attrib": "mail", "modtype": ModifyBatch.REMOVE_ALL},
    ])
    attributes = link.read(dn, "(objectClass=*)").get_entries()[0]["attributes"]
    assert "+420 777 111 222" in attributes["telephoneNumber"]
    assert not attributes.get("mail")


@pytest.mark.parametrize("modification", [
    {"modtype": ModifyBatch.ADD, "values": ["x"]},
    {"attrib": "mail", "modtype": 99, "values": ["x"]},
    {"attrib": "mail", "modtype": ModifyBatch.ADD},
    {"attrib": "mail", "modtype": ModifyBatch.REMOVE_ALL, "values": ["x"]},
])
def test_modify_batch_rejects_malformed(link, modification) -> None:
    with pytest.raises(ValueError):
        link.modify_batch(f"cn=alice,{PEOPLE_DN}", [modification])


def test_rename(link) -> None:
    link.bind(ADMIN_DN, ADMIN_PASSWORD)
    link.rename(f"cn=alice,{PEOPLE_DN}", "cn=alicia", None, True)
    assert link.read(f"cn=alicia,{PEOPLE_DN}", "(objectClass=*)").count_entries() == 1


class TestOptions:
    def test_error_options_reflect_outcome(self, link) -> None:
        with pytest.raises(DirectoryOperationError):
            link.read(f"ou=nowhere,{BASE_DN}", "(objectClass=*)")
        assert link.get_option(Option.ERROR_NUMBER) == 32
        assert link.get_option(Option.ERROR_STRING) == link.outcome.error_string

    def test_read_only_options(self, link) -> None:
        for option in (Option.ERROR_NUMBER, Option.ERROR_STRING, Option.HOST_NAME, Option.MATCHED_DN):
            with pytest.raises(ValueError):
                link.set_option(option, 1)

    def test_unknown_option(self, link) -> None:
        with pytest.raises(ValueError):
            link.get_option(0x7777)

    def test_protocol_version(self, link) -> None:
        assert link.set_option(Option.PROTOCOL_VERSION, 2) is link
        assert link.connection.version == 2
        with pytest.raises(ValueError):
            link.set_option(Option.PROTOCOL_VERSION, 4)

    def test_referrals_and_timeout(self, link) -> None:
        link.set_option(Option.REFERRALS, 1)
        assert link.connection.auto_referrals is True
        link.set_option(Option.NETWORK_TIMEOUT, 5)
        assert link.get_option(Option.NETWORK_TIMEOUT) == 5

    def test_search_defaults(self, link) -> None:
        link.set_option(Option.DEREF, Deref.ALWAYS)
        link.set_option(Option.SIZELIMIT, 10)
        assert link.get_option(Option.DEREF) == Deref.ALWAYS
        assert link.get_option(Option.SIZELIMIT) == 10
        assert link.search(BASE_DN, "(objectClass=person)").count_entries() == 3

    def test_sasl_options_default_to_none(self, link) -> None:
        assert link.get_option(Option.X_SASL_MECH) is None


def test_context_manager_unbinds(link) -> None:
    with link as entered:
        assert entered is link
        link.bind(ADMIN_DN, ADMIN_PASSWORD)
    assert link.connection is None


def test_unbind_then_use(link) -> None:
    link.close()
    with pytest.raises(RuntimeError):
        link.search(BASE_DN, "(objectClass=*)")


def test_paged_result_arms_next_search_only(link) -> None:
    assert link.paged_result(50, cookie=b"abc") is link
    assert link._paged == {"paged_size": 50, "paged_criticality": False, "paged_cookie": b"abc"}

    link.paged_result(10)
    assert link._paged["paged_cookie"] is None


def test_search_before_bind_is_anonymous(link) -> None:
    assert link.connection.closed
    assert link.search(BASE_DN, "(objectClass=person)", ["cn"]).count_entries() == 3
    assert link.errno() == ResultCode.SUCCESS


def test_explicit_deref_overrides_option(link, monkeypatch) -> None:
    link.set_option(Option.DEREF, Deref.ALWAYS)
    sent = []
    search = link.connection.search

    def record_deref(*args, **kwargs):
        sent.append(kwargs["dereference_aliases"])
        return search(*args, **kwargs)

    monkeypatch.setattr(link.connection, "search", record_deref)
    link.search(BASE_DN, "(objectClass=person)", deref=Deref.NEVER)
    link.search(BASE_DN, "(objectClass=person)")
    assert sent == [DEREF_NEVER, DEREF_ALWAYS]


def test_size_limit_exceeded_returns_partial_result(truncating_link) -> None:
    result = truncating_link.search(BASE_DN, "(objectClass=person)", ["cn"])
    assert result.count_entries() == 3
    assert truncating_link.errno() == ResultCode.SIZELIMIT_EXCEEDED
    assert truncating_link.error() == "Size limit exceeded"


def test_connect_again_unbinds_previous_connection(link) -> None:
    link.bind(ADMIN_DN, ADMIN_PASSWORD)
    previous = link.connection
    link.connect("ldap://mock.example.com")
    assert previous.closed
    assert link.connection is not previous
