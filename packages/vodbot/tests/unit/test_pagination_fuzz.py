"""
Property-based checks for the batched pagination engine: every record of
every page comes back exactly once, in page order, under its own key.
"""
import pytest

hyp = pytest.importorskip("hypothesis")

from hypothesis import given, settings, strategies as st

from conftest import ScriptedClient
from test_pagination import PagedQuery, serve

from vodbot.pagination import paginate

keys = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-_", min_size=1, max_size=12)
page = st.lists(st.integers(min_value=0, max_value=10_000).map(str), max_size=5)
catalogue = st.dictionaries(keys, st.lists(page, min_size=1, max_size=6), max_size=8)


@settings(max_examples=75, deadline=None)
@given(catalogue)
def test_paginate_is_complete(pages):
    client = ScriptedClient(serve(pages))
    out = paginate(client, list(pages), PagedQuery())

    assert set(out) == set(pages)
    for key, key_pages in pages.items():
        assert out[key] == [r for p in key_pages for r in p]
    # one wave per page of the longest list
    assert len(client.waves) == max((len(p) for p in pages.values()), default=0)
