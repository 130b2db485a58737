from npm_snapshot.parsers import bun_lock, yarn_lock

YARN_LOCK = b"""\
# THIS IS AN AUTOGENERATED FILE. DO NOT EDIT THIS FILE DIRECTLY.
# yarn lockfile v1


lodash@^4.17.20, lodash@^4.17.21:
  version "4.17.21"
  resolved "https://registry.yarnpkg.com/lodash/-/lodash-4.17.21.tgz#679591c5"
  integrity sha512-lodash==

"@babel/code-frame@^7.0.0", "@babel/code-frame@^7.22.13":
  version "7.23.5"
  resolved "https://registry.yarnpkg.com/@babel/code-frame/-/code-frame-7.23.5.tgz"
  integrity sha512-babel==
  dependencies:
    "@babel/highlight" "^7.23.4"
    chalk "^2.4.2"

"""


def test_two_stanzas_emit_two_records_with_integrity():
    deps = yarn_lock.parse(YARN_LOCK, "snap")

    assert [(dep.name, dep.version) for dep in deps] == [
        ("lodash", "4.17.21"),
        ("@babel/code-frame", "7.23.5"),
    ]
    assert deps[0].integrity_hash == "sha512-lodash=="
    assert deps[1].integrity_hash == "sha512-babel=="
    assert deps[0].resolved_url.startswith("https://registry.yarnpkg.com/lodash/")


def test_records_are_never_direct_or_dev():
    for dep in yarn_lock.parse(YARN_LOCK, "snap"):
        assert dep.is_direct is False
        assert dep.is_dev is False
        assert dep.has_postinstall is False


def test_final_stanza_without_trailing_blank_line_is_emitted():
    content = b'left-pad@^1.3.0:\n  version "1.3.0"\n  integrity sha1-x'

    (dep,) = yarn_lock.parse(content, "snap")

    assert dep.name == "left-pad"
    assert dep.integrity_hash == "sha1-x"


def test_stanza_without_version_is_dropped():
    content = b"broken@^1.0.0:\n  resolved \"https://example.com\"\n\nok@1.0.0:\n  version \"1.0.0\"\n\n"

    deps = yarn_lock.parse(content, "snap")

    assert [dep.name for dep in deps] == ["ok"]
    assert deps[0].resolved_url is None


def test_package_name_from_header():
    assert yarn_lock.package_name_from_header("lodash@^4.17.21:") == "lodash"
    assert yarn_lock.package_name_from_header('"@types/node@*", "@types/node@^20":') == "@types/node"
    assert yarn_lock.package_name_from_header("__metadata:") is None


def test_bun_lockfile_returns_empty_with_warning(caplog):
    with caplog.at_level("WARNING"):
        assert bun_lock.parse(b"\x00\x01binary", "snap") == []

    assert "not implemented" in caplog.text


def test_nested_dependency_entries_do_not_override_fields():
    content = (
        b'foo@^1.0.0:\n'
        b'  version "1.0.0"\n'
        b'  integrity sha512-foo\n'
        b'  dependencies:\n'
        b'    version "^2.0.0"\n'
        b'    integrity "^3.0.0"\n'
        b'\n'
    )

    (dep,) = yarn_lock.parse(content, "snap")

    assert dep.version == "1.0.0"
    assert dep.integrity_hash == "sha512-foo"


def test_fields_after_nested_block_are_still_read():
    content = (
        b'bar@^1.0.0:\n'
        b'  version "1.2.0"\n'
        b'  dependencies:\n'
        b'    resolved "^0.1.0"\n'
        b'  resolved "https://registry.yarnpkg.com/bar/-/bar-1.2.0.tgz"\n'
    )

    (dep,) = yarn_lock.parse(content, "snap")

    assert dep.resolved_url == "https://registry.yarnpkg.com/bar/-/bar-1.2.0.tgz"
