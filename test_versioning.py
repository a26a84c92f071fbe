"""
Version Code Tests

Validates:
1. Code parsing never raises and recognises only a trailing ".NN"
2. Version codes round-trip through parse/format
3. Predecessor lookup walks back one version, falling back to the original
"""

import pytest


class _Doc:
    def __init__(self, code):
        self.code = code

    def __repr__(self):
        return f"_Doc({self.code!r})"


class TestParseVersion:
    """Test the code parser."""

    def test_plain_code(self):
        """Unversioned codes are their own base."""
        from reconciliation.versioning import parse_version
        info = parse_version("HD001")
        assert info.is_revised is False
        assert info.base_code == "HD001"
        assert info.version == 0

    def test_revision_code(self):
        """A .NN suffix is parsed as a version."""
        from reconciliation.versioning import parse_version
        info = parse_version("HD001.02")
        assert info.is_revised is True
        assert info.base_code == "HD001"
        assert info.version == 2

    def test_only_last_suffix_counts(self):
        """Codes with several dots keep everything before the last one as base."""
        from reconciliation.versioning import parse_version
        info = parse_version("HD.A.10")
        assert info.base_code == "HD.A"
        assert info.version == 10

    @pytest.mark.parametrize("code", [None, "", "HD001.", "HD001.ab", ".", "HD001-01"])
    def test_parser_is_total(self, code):
        """Empty and malformed codes come back unrevised."""
        from reconciliation.versioning import parse_version, is_revision_code
        info = parse_version(code)
        assert info.is_revised is False
        assert info.version == 0
        assert info.base_code == code
        assert is_revision_code(code) is False

    def test_format_round_trip(self):
        """format(base, n) parses back to (base, n) with two-digit padding."""
        from reconciliation.versioning import format_version_code, parse_version
        code = format_version_code("HD001", 3)
        assert code == "HD001.03"
        info = parse_version(code)
        assert (info.base_code, info.version) == ("HD001", 3)

    def test_custom_scheme(self):
        """A scheme with a different separator and width."""
        import re
        from reconciliation.versioning import VersionScheme
        scheme = VersionScheme(pattern=re.compile(r"^(.+)-(\d+)$"), pad_width=3, separator="-")
        assert scheme.format("INV7", 4) == "INV7-004"
        assert scheme.parse("INV7-004").version == 4
        assert scheme.is_revision("INV7.04") is False


class TestFindPredecessor:
    """Test version chain resolution."""

    def test_first_revision_resolves_to_original(self):
        """X.01 -> X."""
        from reconciliation.versioning import find_predecessor
        docs = [_Doc("A"), _Doc("A.01")]
        assert find_predecessor("A.01", docs).code == "A"

    def test_walks_back_one_version(self):
        """X.03 -> X.02 when present."""
        from reconciliation.versioning import find_predecessor
        docs = [_Doc("A"), _Doc("A.01"), _Doc("A.02"), _Doc("A.03")]
        assert find_predecessor("A.03", docs).code == "A.02"

    def test_gap_falls_back_to_original(self):
        """A, A.01, A.03: A.03 resolves to A, never to A.01."""
        from reconciliation.versioning import find_predecessor
        docs = [_Doc("A"), _Doc("A.01"), _Doc("A.03")]
        assert find_predecessor("A.03", docs).code == "A"

    def test_missing_original(self):
        """No original and no previous version gives None."""
        from reconciliation.versioning import find_predecessor
        docs = [_Doc("A.02")]
        assert find_predecessor("A.02", docs) is None
        assert find_predecessor("A.01", []) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
