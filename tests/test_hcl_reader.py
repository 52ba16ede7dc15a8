"""
Tests for HclConfigReader, the python-hcl2 backed collaborator.
"""

import pytest

from terragrunt_nav.core.hcl_reader import HclConfigReader, RangeLocator, normalize_blocks
from terragrunt_nav.core.models import RANGE_KEY, ParseContext, SourceRange

from conftest import write


MODULE_TEXT = """
locals {
  env = "dev"
  zones = ["a", "b"]
}

inputs = {
  name = "${local.env}-app"
}
"""


@pytest.fixture
def reader():
    return HclConfigReader()


@pytest.fixture
def module_file(tmp_path):
    return write(tmp_path / "app" / "terragrunt.hcl", MODULE_TEXT)


def test_normalize_merges_block_lists():
    """Test that repeated blocks merge into one mapping."""
    parsed = {
        "locals": [{"a": 1}, {"b": 2}],
        "variable": [{"region": {"default": "eu"}}, {"zone": {}}],
        "inputs": {"name": "x"},
    }

    configs = normalize_blocks(parsed)

    assert configs["locals"] == {"a": 1, "b": 2}
    assert set(configs["variable"]) == {"region", "zone"}
    assert configs["inputs"] == {"name": "x"}


def test_normalize_drops_metadata_and_quotes():
    """Test that hcl2 metadata keys and quotes are dropped."""
    parsed = {"locals": [{"env": '"dev"', "__start_line__": 1, "__end_line__": 3}]}

    assert normalize_blocks(parsed) == {"locals": {"env": "dev"}}


def test_parse_without_eval_keeps_interpolations(reader, module_file):
    """Test that parsing without eval keeps interpolation text."""
    context = ParseContext(file_path=str(module_file), do_eval=False)

    reader.parse_module_file(str(module_file), context)

    assert context.configs["locals"]["env"] == "dev"
    assert context.configs["inputs"]["name"] == "${local.env}-app"
    assert context.fresh_start is False


def test_parse_with_eval_resolves_values(reader, module_file):
    """Test that parsing with eval resolves interpolations."""
    context = ParseContext(file_path=str(module_file), do_eval=True)

    reader.parse_module_file(str(module_file), context)

    assert context.configs["inputs"]["name"] == "dev-app"


def test_ranges_point_at_keys(reader, module_file):
    """Test that ranges cover the key tokens."""
    context = ParseContext(file_path=str(module_file), do_eval=False)

    reader.parse_module_file(str(module_file), context)

    assert context.ranges["locals"][RANGE_KEY] == SourceRange(0, 0, 0, 6)
    assert context.ranges["locals"]["env"][RANGE_KEY] == SourceRange(1, 2, 1, 5)
    assert context.ranges["inputs"]["name"][RANGE_KEY] == SourceRange(6, 2, 6, 6)


def test_sequence_elements_get_their_own_ranges(reader, module_file):
    """Test that each sequence element gets its own range."""
    context = ParseContext(file_path=str(module_file), do_eval=False)

    reader.parse_module_file(str(module_file), context)

    zones = context.ranges["locals"]["zones"]
    assert isinstance(zones, list)
    assert [z[RANGE_KEY] for z in zones] == [
        SourceRange(2, 12, 2, 13),
        SourceRange(2, 17, 2, 18),
    ]


def test_ranges_congruent_with_configs(reader, module_file):
    """Test that the ranges tree has the same shape as configs."""
    context = ParseContext(file_path=str(module_file), do_eval=False)
    reader.parse_module_file(str(module_file), context)

    def assert_congruent(value, node):
        if isinstance(value, dict):
            assert isinstance(node, dict)
            for key, child in value.items():
                assert key in node
                assert_congruent(child, node[key])
        elif isinstance(value, list):
            assert isinstance(node, list) and len(node) == len(value)
            for child, child_node in zip(value, node):
                assert_congruent(child, child_node)

    assert_congruent(context.configs, context.ranges)


def test_labelled_block_children_are_located():
    """Test that keys inside a labelled block are located."""
    locator = RangeLocator('include "root" {\n  path = "x"\n}\n')

    ranges = locator.locate({"include": {"root": {"path": "x"}}})

    assert ranges["include"]["root"][RANGE_KEY] == SourceRange(0, 9, 0, 13)
    assert ranges["include"]["root"]["path"][RANGE_KEY] == SourceRange(1, 2, 1, 6)


def test_key_text_inside_string_is_ignored():
    """Test that key text inside a string value is not taken as the key."""
    locator = RangeLocator(
        'inputs = {\n'
        '  description = "region: eu-west-1"\n'
        '  region = "eu-west-1"\n'
        '  note = "env=dev"\n'
        '  env = "dev"\n'
        '}\n'
    )

    ranges = locator.locate({"inputs": {
        "description": "region: eu-west-1",
        "region": "eu-west-1",
        "note": "env=dev",
        "env": "dev",
    }})

    assert ranges["inputs"]["region"][RANGE_KEY] == SourceRange(2, 2, 2, 8)
    assert ranges["inputs"]["env"][RANGE_KEY] == SourceRange(4, 2, 4, 5)


def test_nested_key_does_not_shadow_sibling():
    """Test that a nested key does not shadow a later sibling of the same name."""
    locator = RangeLocator(
        'inputs = {\n'
        '  tags = {\n'
        '    env = "a"\n'
        '  }\n'
        '  env = "b"\n'
        '}\n'
    )

    ranges = locator.locate({"inputs": {"tags": {"env": "a"}, "env": "b"}})

    assert ranges["inputs"]["tags"]["env"][RANGE_KEY] == SourceRange(2, 4, 2, 7)
    assert ranges["inputs"]["env"][RANGE_KEY] == SourceRange(4, 2, 4, 5)


def test_siblings_on_one_line():
    """Test that siblings sharing a line get separate ranges."""
    locator = RangeLocator('inputs = { a = "a=1", b = 2 }\n')

    ranges = locator.locate({"inputs": {"a": "a=1", "b": 2}})

    assert ranges["inputs"]["a"][RANGE_KEY] == SourceRange(0, 11, 0, 12)
    assert ranges["inputs"]["b"][RANGE_KEY] == SourceRange(0, 22, 0, 23)


def test_unlocatable_key_keeps_shape():
    """Test that an unlocatable key keeps its shape without a marker."""
    locator = RangeLocator('a = 1\n')

    ranges = locator.locate({"a": 1, "ghost": {"x": [1]}})

    assert ranges["a"][RANGE_KEY] == SourceRange(0, 0, 0, 1)
    assert ranges["ghost"] == {"x": [{}]}


def test_parse_error_is_logged_not_raised(reader, tmp_path):
    """Test that a parse error leaves the context unchanged."""
    broken = write(tmp_path / "broken.tf", "locals {\n  a = \n")
    context = ParseContext(file_path=str(broken))

    result = reader.parse_module_file(str(broken), context)

    assert result is context
    assert context.configs == {}


def test_files_accumulate_into_one_context(reader, tmp_path):
    """Test that several files merge into one context."""
    first = write(tmp_path / "a.tf", 'locals {\n  one = 1\n}\n')
    second = write(tmp_path / "b.tf", 'locals {\n  two = 2\n}\n')
    context = ParseContext(do_eval=False)

    reader.parse_module_file(str(first), context)
    context.fresh_start = True
    reader.parse_module_file(str(second), context)

    assert context.configs["locals"] == {"one": 1, "two": 2}


class TestFindInParentFolders:
    def test_finds_nearest_ancestor(self, reader, tmp_path):
        """Test that the nearest matching ancestor wins."""
        write(tmp_path / "root.hcl", "")
        write(tmp_path / "live" / "root.hcl", "")
        active = write(tmp_path / "live" / "dev" / "app" / "terragrunt.hcl", "")

        found = reader.find_in_parent_folders("root.hcl", ParseContext(file_path=str(active)))

        assert found == str(tmp_path / "live" / "root.hcl")

    def test_skips_own_directory(self, reader, tmp_path):
        """Test that the active file's own directory is not searched."""
        write(tmp_path / "terragrunt.hcl", "")
        active = write(tmp_path / "app" / "terragrunt.hcl", "")

        found = reader.find_in_parent_folders("", ParseContext(file_path=str(active)))

        assert found == str(tmp_path / "terragrunt.hcl")

    def test_miss_returns_none(self, reader, tmp_path):
        """Test that a miss returns None."""
        active = write(tmp_path / "app" / "terragrunt.hcl", "")

        found = reader.find_in_parent_folders(
            "no-such-file-anywhere.hcl", ParseContext(file_path=str(active))
        )

        assert found is None


def test_overlay_cached_variables(reader):
    """Test that inputs override cached variable defaults."""
    cached = ParseContext(configs={"variable": {"region": {"default": "us-east-1"}}})

    reader.overlay_cached_variables(cached, {"region": "eu-west-1", "extra": 1})

    assert cached.configs["variable"]["region"]["default"] == "eu-west-1"
    assert cached.inputs == {"region": "eu-west-1", "extra": 1}


def test_overlay_ignores_missing_snapshot(reader):
    """Test that overlaying onto no snapshot is a no-op."""
    reader.overlay_cached_variables(None, {"region": "eu"})
