"""Tests for wiki page path normalization."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from azure_devops_wiki_mcp.paths import encode_wiki_path, normalize_wiki_path


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("/Folder/My-Page.md", "/Folder/My Page"),
        ("Folder/My-Page.md", "/Folder/My Page"),
        ("/Home", "/Home"),
        ("/Notes.MD", "/Notes"),
        ("/My-Folder/Sub-Page", "/My-Folder/Sub Page"),
        ("//Folder///Page", "/Folder/Page"),
        ("/Folder/File%2DName.md", "/Folder/File Name"),
        ("%2FEncoded%20Root", "/Encoded Root"),
        ("/Caf%C3-x", "/Caf%C3 x"),
        ("/Caf%C3%A9-Menu", "/Caf\u00e9 Menu"),
        ("", "/"),
        ("/", "/"),
    ],
)
def test_normalize_wiki_path(raw, expected):
    assert normalize_wiki_path(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "/Folder/My-Page.md",
        "/a.md.md",
        "/Double%2520Encoded-Name",
        "/Path with spaces/And special chars $&+,/:;=?@",
        "/trailing/",
        "/x%/2Fy-z",
        "no-leading-slash.md",
        "/Caf%C3-x.md",
    ],
)
def test_normalize_is_idempotent(raw):
    once = normalize_wiki_path(raw)
    assert normalize_wiki_path(once) == once


# Mostly path-like characters so escapes, suffixes and hyphens show up often
path_text = st.one_of(st.text(), st.text(alphabet="/-.%20ACDFmd\u00e9 "))


@given(path_text)
def test_normalize_is_idempotent_for_any_input(raw):
    once = normalize_wiki_path(raw)
    assert once.startswith("/")
    assert normalize_wiki_path(once) == once


def test_hyphens_only_replaced_in_last_segment():
    assert normalize_wiki_path("/my-team/release-notes/v1-2") == "/my-team/release-notes/v1 2"


def test_encode_preserves_slashes():
    assert encode_wiki_path("/Folder/My Page") == "/Folder/My%20Page"
    assert encode_wiki_path("/Q&A") == "/Q%26A"
