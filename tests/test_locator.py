"""
Tests for locator classification, the replacement pipeline and resolution.
"""

import os

import pytest

from terragrunt_nav.core.hcl_reader import HclConfigReader
from terragrunt_nav.core.locator import (
    LOCATOR_PATTERNS,
    LocatorKind,
    SourceLocatorResolver,
    apply_replacements,
    classify_line,
    resolve_local_path,
)
from terragrunt_nav.core.models import ParseContext, ReplacementRule, SourceRange


GIT_LINE = '  source = "git::git@github.com:org/repo.git//modules/x?ref=v1"'


class TestClassify:
    def test_pattern_order(self):
        """Test that the locator table keeps its match order."""
        kinds = [kind for _, kind in LOCATOR_PATTERNS]
        assert kinds == [LocatorKind.GIT, LocatorKind.LOCAL, LocatorKind.ENCLOSED]

    def test_git_source(self):
        """Test that a git source line is classified as git."""
        match = classify_line(GIT_LINE)

        assert match.kind is LocatorKind.GIT
        assert match.repo_url == "git@github.com:org/repo.git"
        assert match.module_path == "modules/x"
        assert match.ref == "v1"
        assert match.start == 11
        assert match.end == len(GIT_LINE)

    def test_git_wins_over_local(self):
        """Test that a git source wins over the local source pattern."""
        # the same line also satisfies the local pattern
        match = classify_line('source = "git::https://github.com/org/repo.git//mod?ref=main"')

        assert match.kind is LocatorKind.GIT
        assert match.repo_url == "https://github.com/org/repo.git"
        assert match.module_path == "mod"

    def test_ssh_prefix_is_not_part_of_url(self):
        """Test that the ssh prefix is not part of the captured URL."""
        match = classify_line('source = "git::ssh://git@host.com/org/repo.git//m?ref=v2"')

        assert match.repo_url == "git@host.com/org/repo.git"
        assert match.ref == "v2"

    def test_local_config_path(self):
        """Test that a local config_path is classified."""
        match = classify_line('  config_path = "../vpc"')

        assert match.kind is LocatorKind.LOCAL
        assert match.raw == "../vpc"
        assert (match.start, match.end) == (17, 23)
        assert match.range(4) == SourceRange(4, 17, 4, 23)

    def test_local_source(self):
        """Test that a local source is classified."""
        match = classify_line('source = "../../modules/app"')

        assert match.kind is LocatorKind.LOCAL
        assert match.raw == "../../modules/app"

    def test_enclosed_function(self):
        """Test that find_in_parent_folders inside a path is classified."""
        match = classify_line('  path = find_in_parent_folders("root.hcl")')

        assert match.kind is LocatorKind.ENCLOSED
        assert match.function == "find_in_parent_folders"
        assert match.raw == "root.hcl"
        assert (match.start, match.end) == (33, 41)

    @pytest.mark.parametrize("line", [
        "  path = find_in_parent_folders()",
        "locals {",
        '  name = "app"',
        "",
    ])
    def test_no_match(self, line):
        """Test that ordinary lines are not classified."""
        assert classify_line(line) is None


class TestReplacements:
    def test_rules_apply_in_order(self):
        """Test that replacement rules apply in order."""
        rules = [ReplacementRule("foo", "bar"), ReplacementRule("bar", "baz")]
        assert apply_replacements("foo/x", rules) == "baz/x"

    def test_first_occurrence_only(self):
        """Test that a rule replaces only the first occurrence."""
        assert apply_replacements("foo/foo", [ReplacementRule("foo", "bar")]) == "bar/foo"

    def test_empty_find_is_skipped(self):
        """Test that a rule with an empty find string is skipped."""
        assert apply_replacements("foo/x", [ReplacementRule("", "zzz")]) == "foo/x"


@pytest.fixture
def reader():
    return HclConfigReader()


@pytest.fixture
def context(tmp_path):
    return ParseContext(
        file_path=str(tmp_path / "live" / "terragrunt.hcl"),
        configs={"locals": {"root": "../..", "count": 3}},
    )


class TestResolve:
    def test_local_with_replacement(self, reader, context):
        """Test that replacements apply to local targets."""
        resolver = SourceLocatorResolver(reader, replacement_rules=[ReplacementRule("ROOT", "../..")])
        match = classify_line('source = "ROOT/modules/app"')

        resolved = resolver.resolve(match, 2, context)

        assert resolved.target == "../../modules/app"
        assert resolved.range == SourceRange(2, 10, 2, 26)

    def test_replacement_toggle_off(self, reader, context):
        """Test that disabled replacements leave the target alone."""
        resolver = SourceLocatorResolver(
            reader, replace_strings=False, replacement_rules=[ReplacementRule("ROOT", "../..")]
        )
        match = classify_line('source = "ROOT/modules/app"')

        assert resolver.resolve(match, 0, context).target == "ROOT/modules/app"

    def test_interpolated_target(self, reader, context):
        """Test that an interpolated target is evaluated."""
        resolver = SourceLocatorResolver(reader)
        match = classify_line('source = "${local.root}/modules/app"')

        assert resolver.resolve(match, 0, context).target == "../../modules/app"

    def test_evaluation_failure_gives_nothing(self, reader, context):
        """Test that an evaluation failure yields no target."""
        resolver = SourceLocatorResolver(reader)
        match = classify_line('source = "${local.missing}/modules/app"')

        assert resolver.resolve(match, 0, context) is None

    def test_non_string_target_gives_nothing(self, reader, context):
        """Test that a non-string target yields no target."""
        resolver = SourceLocatorResolver(reader)
        match = classify_line('config_path = "${local.count}"')

        assert resolver.resolve(match, 0, context) is None

    def test_find_in_parent_folders_hit(self, reader, live_tree):
        """Test that a find_in_parent_folders hit yields the found file."""
        active = live_tree / "live" / "dev" / "app" / "terragrunt.hcl"
        resolver = SourceLocatorResolver(reader)
        match = classify_line('  path = find_in_parent_folders("root.hcl")')

        resolved = resolver.resolve(match, 1, ParseContext(file_path=str(active)))

        assert resolved.target == str(live_tree / "root.hcl")

    def test_find_in_parent_folders_miss(self, collaborator, context):
        """Test that a find_in_parent_folders miss yields no target."""
        resolver = SourceLocatorResolver(collaborator)
        match = classify_line('  path = find_in_parent_folders("nope.hcl")')

        assert resolver.resolve(match, 0, context) is None


def test_resolve_local_path_relative(tmp_path):
    """Test that relative paths resolve against the active file's directory."""
    active = tmp_path / "live" / "app" / "terragrunt.hcl"

    assert resolve_local_path("../../modules/app", str(active)) == os.path.normpath(
        str(tmp_path / "modules" / "app")
    )


def test_resolve_local_path_absolute(tmp_path):
    """Test that absolute paths are kept."""
    assert resolve_local_path(str(tmp_path / "x" / ".." / "y"), "/elsewhere/f.hcl") == str(tmp_path / "y")
