"""Tests for ldap_core."""
