"""
Property-based checks for the key <-> alias table.

Whatever the keys look like, every alias must be a legal GraphQL name and
map back to exactly the key it was made from.
"""
import re

import pytest

hyp = pytest.importorskip("hypothesis")

from hypothesis import given, strategies as st

from vodbot.gql import AliasTable

NAME = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")


@given(st.lists(st.text(min_size=1, max_size=40), max_size=30))
def test_alias_round_trip(keys):
    table = AliasTable(keys)
    aliases = [table.alias(k) for k in table]
    assert len(set(aliases)) == len(aliases), "aliases must be unique"
    for key in set(keys):
        alias = table.alias(key)
        assert NAME.match(alias)
        assert table.key(alias) == key
