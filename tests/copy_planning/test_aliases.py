# === NAVMAP v1 ===
# {
#   "module": "tests.copy_planning.test_aliases",
#   "purpose": "Pytest coverage for alias file loading and URL resolution",
#   "sections": [
#     {"id": "tests", "name": "Test Cases", "anchor": "TST", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Alias file parsing and alias resolution."""

import pytest

from BucketCopy.CopyPlanning.aliases import AliasTable, load_alias_config
from BucketCopy.CopyPlanning.errors import ConfigError, UserConfigError


def test_missing_alias_file_yields_no_aliases(tmp_path):
    config = load_alias_config(tmp_path / "absent.yaml")
    assert config.aliases == {}


def test_alias_file_is_parsed(tmp_path):
    path = tmp_path / "aliases.yaml"
    path.write_text(
        "aliases:\n"
        "  play:\n"
        "    url: s3://\n"
        "    storage_options:\n"
        "      anon: true\n"
        "  scratch:\n"
        "    url: memory://scratch\n",
        encoding="utf-8",
    )

    table = AliasTable(load_alias_config(path))

    assert table.names() == ("play", "scratch")
    assert table.entry("play").storage_options == {"anon": True}
    assert table.entry("scratch").url == "memory://scratch"


@pytest.mark.parametrize(
    "text",
    [
        "aliases: [unclosed\n",
        "- just\n- a list\n",
        "aliases:\n  play:\n    endpoint: https://example.invalid\n",
        "aliases:\n  'a/b':\n    url: memory://\n",
    ],
)
def test_invalid_alias_files_raise_config_error(tmp_path, text):
    path = tmp_path / "aliases.yaml"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(UserConfigError):
        load_alias_config(path)


def test_config_error_alias():
    assert ConfigError is UserConfigError


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("play/bucket/a.txt", ("play", "bucket/a.txt")),
        ("play", ("play", "")),
        ("play/", ("play", "")),
        ("dir/a.txt", ("", "dir/a.txt")),
        ("/abs/path", ("", "/abs/path")),
        ("player/x", ("", "player/x")),
    ],
)
def test_resolve(url, expected):
    table = AliasTable.from_mapping({"play": "memory://"})
    assert table.resolve(url) == expected
    assert ("play" in table) is True
