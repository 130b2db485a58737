import pytest

from npm_snapshot.errors import LockfileParseError
from npm_snapshot.parsers import pnpm_lock

PNPM_LOCK = b"""\
lockfileVersion: '6.0'

packages:

  /lodash@4.17.21:
    resolution: {integrity: sha512-lodash}
    dev: false

  /@types/node@20.11.5:
    resolution: {integrity: sha512-types}
    dev: true

  /esbuild@0.19.12:
    resolution: {integrity: sha512-esbuild}
    hasBin: true
    requiresBuild: true

  /husky@8.0.3:
    resolution: {tarball: https://example.com/husky.tgz}
    scripts:
      postinstall: husky install
"""


def test_parses_packages_mapping():
    deps = {dep.name: dep for dep in pnpm_lock.parse(PNPM_LOCK, "snap")}

    assert set(deps) == {"lodash", "@types/node", "esbuild", "husky"}
    assert deps["lodash"].version == "4.17.21"
    assert deps["lodash"].integrity_hash == "sha512-lodash"
    assert deps["@types/node"].version == "20.11.5"
    assert deps["@types/node"].is_dev is True
    assert deps["husky"].integrity_hash is None


def test_install_script_is_approximated_from_bin_or_scripts():
    deps = {dep.name: dep for dep in pnpm_lock.parse(PNPM_LOCK, "snap")}

    assert deps["esbuild"].has_postinstall is True
    assert deps["husky"].has_postinstall is True
    assert deps["lodash"].has_postinstall is False


def test_direct_flag_is_never_set():
    assert all(not dep.is_direct for dep in pnpm_lock.parse(PNPM_LOCK, "snap"))


@pytest.mark.parametrize(
    "key, expected",
    [
        ("/lodash@4.17.21", ("lodash", "4.17.21")),
        ("/@scope/name@1.2.3", ("@scope/name", "1.2.3")),
        ("/@scope/name@1.2.3/extra/path", ("@scope/name", "1.2.3")),
        ("react-dom@18.2.0(react@18.2.0)", ("react-dom", "18.2.0")),
        ("/@scope", ("@scope", "unknown")),
        ("no-version", ("no-version", "unknown")),
    ],
)
def test_split_package_key(key, expected):
    assert pnpm_lock.split_package_key(key) == expected


def test_missing_packages_section_yields_empty_list():
    assert pnpm_lock.parse(b"lockfileVersion: '9.0'\n", "snap") == []


def test_empty_document_yields_empty_list():
    assert pnpm_lock.parse(b"", "snap") == []


def test_invalid_yaml_raises_parse_error():
    with pytest.raises(LockfileParseError) as excinfo:
        pnpm_lock.parse(b"packages: [1, 2\n", "snap")

    assert "pnpm-lock.yaml" in str(excinfo.value)
