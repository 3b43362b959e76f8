"""Multi-root resolution, traversal guard, and unsafe-root policy."""

import os
from pathlib import Path

import pytest

from liveserve.errors import ConfigError, ErrorCode
from liveserve.web.resolver import RootSet, build_root_set, is_unsafe_root, resolve


def test_first_root_with_the_file_wins(two_roots):
    a, b = two_roots
    roots = build_root_set([a, b])

    found = resolve(roots, "/x.txt")
    assert found is not None
    assert found.origin_root == b.resolve()
    assert found.path == b.resolve() / "x.txt"
    assert found.size == len("from B")
    assert not found.is_dir

    shared = resolve(roots, "/shared.txt")
    assert shared.origin_root == a.resolve()


def test_traversal_outside_every_root_is_not_found(two_roots, tmp_path):
    a, b = two_roots
    secret = tmp_path / "secret.txt"
    secret.write_text("top secret")
    roots = build_root_set([a, b])

    assert resolve(roots, "/../secret.txt") is None
    assert resolve(roots, "/../../etc/passwd") is None
    assert resolve(roots, "/sub/../../secret.txt") is None
    assert resolve(roots, "\\..\\secret.txt") is None


def test_sibling_with_common_prefix_is_not_inside(tmp_path):
    root = tmp_path / "site"
    sibling = tmp_path / "site-private"
    root.mkdir()
    sibling.mkdir()
    (sibling / "key.pem").write_text("key")

    assert resolve(build_root_set([root]), "/../site-private/key.pem") is None


def test_root_itself_resolves_as_directory(site):
    found = resolve(build_root_set([site]), "/")
    assert found is not None
    assert found.is_dir
    assert found.path == site.resolve()


def test_missing_path_is_not_found(site):
    assert resolve(build_root_set([site]), "/nope.html") is None


def test_inner_dotdot_that_stays_inside_is_allowed(site):
    found = resolve(build_root_set([site]), "/docs/../about.txt")
    assert found is not None
    assert found.path.name == "about.txt"


def test_build_skips_missing_files_and_duplicates(site, tmp_path):
    a_file = tmp_path / "file.txt"
    a_file.write_text("x")
    roots = build_root_set([site, tmp_path / "missing", a_file, str(site), site / "docs" / ".."])

    assert list(roots) == [site.resolve()]


def test_build_resolves_symlinked_roots(site, tmp_path):
    link = tmp_path / "link"
    link.symlink_to(site, target_is_directory=True)
    roots = build_root_set([link, site])
    assert list(roots) == [site.resolve()]


def test_empty_root_set_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError) as exc_info:
        build_root_set([tmp_path / "missing"])
    assert exc_info.value.code == ErrorCode.CONFIG_NO_VALID_ROOTS

    with pytest.raises(ConfigError):
        RootSet([])


def test_single_path_argument(site):
    assert len(build_root_set(str(site))) == 1


# -- unsafe roots -------------------------------------------------------------

@pytest.mark.skipif(not os.path.isdir("/etc"), reason="POSIX layout required")
def test_system_trees_are_rejected_when_enforced():
    assert is_unsafe_root("/etc")
    assert is_unsafe_root("/usr/share")
    with pytest.raises(ConfigError):
        build_root_set(["/etc"])


@pytest.mark.skipif(not os.path.isdir("/etc"), reason="POSIX layout required")
def test_system_trees_are_served_when_not_enforced():
    roots = build_root_set(["/etc"], enforce_safe_roots=False)
    assert list(roots) == [Path(os.path.realpath("/etc"))]


def test_home_is_rejected_only_as_exact_root(tmp_path, monkeypatch):
    home = tmp_path / "home"
    project = home / "project"
    project.mkdir(parents=True)
    monkeypatch.setenv("HOME", str(home))

    assert is_unsafe_root(str(home))
    assert not is_unsafe_root(str(project))
    assert list(build_root_set([home, project])) == [project.resolve()]
    assert len(build_root_set([home], enforce_safe_roots=False)) == 1


@pytest.mark.skipif(not os.path.isdir("/tmp"), reason="POSIX layout required")
def test_bare_tmp_is_rejected_but_children_are_fine(tmp_path):
    assert is_unsafe_root("/tmp")
    assert is_unsafe_root("/")
    assert not is_unsafe_root(str(tmp_path))
