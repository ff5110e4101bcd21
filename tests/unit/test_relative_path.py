"""
Unit tests for the RelativePath value type.
"""

import pytest

from workspace_api.common.relative_path import RelativePath
from workspace_api.core.exceptions import InvalidPathError


class TestRelativePathCreation:
    """Tests for constructing and validating paths."""

    def test_separators_are_normalized(self):
        """Backslashes and slashes produce equal paths."""
        path = RelativePath("some/path/to/file.txt")
        path_with_backslashes = RelativePath("some\\path\\to\\file.txt")

        assert str(path) == "some/path/to/file.txt"
        assert path == path_with_backslashes

    def test_default_is_root(self):
        """The default path is the empty root."""
        path = RelativePath()

        assert str(path) == ""
        assert path.is_empty()
        assert path.components == ()

    @pytest.mark.parametrize("invalid", [
        "/absolute/path",
        "trailing/slash/",
        "/",
        "some/../path",
        "some/./path",
        "some//path",
        "..",
    ])
    def test_invalid_paths_rejected(self, invalid):
        """Absolute, trailing-slash and non-normalized paths are invalid."""
        with pytest.raises(InvalidPathError):
            RelativePath(invalid)

    def test_invalid_path_error_is_value_error(self):
        """InvalidPathError can be caught as ValueError."""
        with pytest.raises(ValueError):
            RelativePath("/abs")

    def test_from_segments(self):
        """Paths can be built from segments."""
        assert RelativePath.from_segments(["sub", "b.txt"]) == RelativePath("sub/b.txt")
        assert RelativePath.from_segments([]).is_empty()

    def test_from_segments_rejects_separators(self):
        """A segment must not contain a separator."""
        with pytest.raises(InvalidPathError):
            RelativePath.from_segments(["a/b"])
        with pytest.raises(InvalidPathError):
            RelativePath.from_segments([""])

    def test_coerce(self):
        """coerce accepts paths, strings and segment sequences."""
        path = RelativePath("a/b")

        assert RelativePath.coerce(path) is path
        assert RelativePath.coerce("a/b") == path
        assert RelativePath.coerce(["a", "b"]) == path
        assert RelativePath.coerce(("a", "b")) == path
        assert RelativePath.coerce([]).is_empty()

        with pytest.raises(InvalidPathError):
            RelativePath.coerce(42)


class TestRelativePathAccessors:
    """Tests for file_name, parent, components and join."""

    def test_file_name(self):
        assert RelativePath("some/path/to/file.txt").file_name == "file.txt"
        assert RelativePath("").file_name is None

    def test_parent(self):
        assert RelativePath("a/b/c").parent == RelativePath("a/b")
        assert RelativePath("a").parent == RelativePath("")
        assert RelativePath("").parent is None

    def test_components(self):
        path = RelativePath("some/path/to/file.txt")

        assert path.components == ("some", "path", "to", "file.txt")
        assert path.depth == 4

    def test_join(self):
        assert RelativePath("").join("a") == RelativePath("a")
        assert RelativePath("a").join("b") == RelativePath("a/b")

        with pytest.raises(InvalidPathError):
            RelativePath("a").join("")
        with pytest.raises(InvalidPathError):
            RelativePath("a").join("..")

    def test_string_equality_and_hash(self):
        """Paths compare equal to their string form and hash consistently."""
        assert RelativePath("a/b") == "a/b"
        assert len({RelativePath("a/b"), RelativePath("a\\b")}) == 1


class TestRelativePathOrdering:
    """Tests for component-wise ordering."""

    def test_standard_ordering(self):
        paths = [RelativePath(p) for p in ["a/b/c/d", "a/b/c", "a/b/d", "a/b/c"]]

        assert [str(p) for p in sorted(paths)] == ["a/b/c", "a/b/c", "a/b/c/d", "a/b/d"]

    def test_special_characters_order_by_component(self):
        """'a/b!/c' sorts after 'a/b/c' even though the raw strings sort the other way."""
        assert "a/b!/c" < "a/b/c"
        assert RelativePath("a/b!/c") > RelativePath("a/b/c")


class TestCommonAncestor:
    """Tests for common_ancestor and is_ancestor_of."""

    def test_shared_prefix(self):
        assert RelativePath("a/b/c/d").common_ancestor(RelativePath("a/b/e/f")) == "a/b"

    def test_one_contains_other(self):
        assert RelativePath("a/b/c").common_ancestor(RelativePath("a/b/c/d/e")) == "a/b/c"

    def test_disjoint(self):
        assert RelativePath("a/b/c").common_ancestor(RelativePath("d/e/f")).is_empty()

    def test_partial_segment_is_not_shared(self):
        """'ab' and 'abc' share no segment."""
        assert RelativePath("ab/x").common_ancestor(RelativePath("abc/x")).is_empty()

    def test_is_ancestor_of(self):
        assert RelativePath("").is_ancestor_of(RelativePath("a"))
        assert RelativePath("a").is_ancestor_of(RelativePath("a/b"))
        assert not RelativePath("a").is_ancestor_of(RelativePath("a"))
        assert not RelativePath("a").is_ancestor_of(RelativePath("ab"))
