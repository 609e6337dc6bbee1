"""Unit tests for branding slot extraction."""

from __future__ import annotations

from pathlib import Path

from retools.context.branding import (
    BrandingContext,
    BrandingEntry,
    BrandingSlot,
    MatchKind,
    SlotRule,
    candidates_for,
    extract_branding,
)
from retools.context.manifest import load_manifest
from retools.context.reader import TRUNCATION_MARKER
from retools.context.walker import RepositoryFile, walk_repository


def _extract(root: Path) -> BrandingContext:
    return extract_branding(root, walk_repository(root), load_manifest(root))


def _file(path: str) -> RepositoryFile:
    return RepositoryFile(path=path, extension=Path(path).suffix.lower(), size=1)


class TestExtractBranding:
    """Tests for extract_branding over real trees."""

    def test_empty_repository(self, tmp_repo: Path) -> None:
        """Test that an empty tree yields no slots."""
        branding = _extract(tmp_repo)

        assert branding.is_empty()
        assert branding.to_dict() == {}

    def test_next_repository_slots(self, next_repo: Path) -> None:
        """Test slot population for a typical Next.js tree."""
        branding = _extract(next_repo)

        identity = branding.first(BrandingSlot.IDENTITY)
        assert identity is not None
        assert identity.path == "package.json"
        assert identity.content == "name: acme-site\ndescription: Marketing site for Acme"

        assert branding.first(BrandingSlot.THEME_CONFIG).path == "tailwind.config.ts"
        assert branding.first(BrandingSlot.GLOBAL_STYLES).path == "app/globals.css"
        assert [e.path for e in branding.get(BrandingSlot.LAYOUT)] == ["app/layout.tsx"]
        assert [e.path for e in branding.get(BrandingSlot.NAV_COMPONENT)] == ["components/Navbar.tsx"]
        assert branding.first(BrandingSlot.HOMEPAGE).path == "app/page.tsx"

    def test_readme_identity_without_manifest(self, tmp_repo: Path, make_files) -> None:
        """Test that the README fills identity when there is no manifest."""
        make_files(tmp_repo, {"README.md": "# Acme"})

        identity = _extract(tmp_repo).first(BrandingSlot.IDENTITY)

        assert identity is not None
        assert identity.path == "README.md"
        assert identity.content == "# Acme"

    def test_symlinked_readme_not_used_for_identity(self, tmp_repo: Path, make_files) -> None:
        """Test that identity never comes from a file linked outside the tree."""
        secret = tmp_repo.parent / "outside_secret.txt"
        secret.write_text("TOP-SECRET-TOKEN")
        (tmp_repo / "README.md").symlink_to(secret)
        make_files(tmp_repo, {"docs/README.md": "# Acme docs"})

        branding = _extract(tmp_repo)

        assert "TOP-SECRET-TOKEN" not in str(branding.to_dict())
        identity = branding.first(BrandingSlot.IDENTITY)
        assert identity is None or identity.path != "README.md"

    def test_identity_truncated_at_cap(self, tmp_repo: Path, make_files) -> None:
        """Test that an oversized README is cut at the slot cap."""
        make_files(tmp_repo, {"README.md": "r" * 5000})

        identity = _extract(tmp_repo).first(BrandingSlot.IDENTITY)

        assert identity.truncated is True
        assert identity.content == "r" * 4000 + TRUNCATION_MARKER

    def test_empty_candidate_skipped(self, tmp_repo: Path, make_files) -> None:
        """Test that an empty file does not win its slot."""
        make_files(tmp_repo, {"app/globals.css": "", "src/index.css": "body { color: red; }"})

        styles = _extract(tmp_repo).first(BrandingSlot.GLOBAL_STYLES)

        assert styles.path == "src/index.css"

    def test_nav_fragments_and_limit(self, tmp_repo: Path, make_files) -> None:
        """Test fragment matching order and the two-entry limit."""
        make_files(
            tmp_repo,
            {
                "components/Header.tsx": "h",
                "components/Navigation.tsx": "n",
                "components/Navbar.tsx": "b",
                "components/Navbar.test.tsx": "t",
            },
        )

        nav = _extract(tmp_repo).get(BrandingSlot.NAV_COMPONENT)

        assert [e.path for e in nav] == ["components/Navbar.tsx", "components/Navigation.tsx"]

    def test_nav_ignores_non_component_files(self, tmp_repo: Path, make_files) -> None:
        """Test that stylesheets and story files are not navigation components."""
        make_files(
            tmp_repo,
            {
                "styles/header.css": "h",
                "components/Header.stories.tsx": "s",
                "components/Canvas.tsx": "c",
            },
        )

        assert not _extract(tmp_repo).has(BrandingSlot.NAV_COMPONENT)

    def test_homepage_depth_limit(self, tmp_repo: Path, make_files) -> None:
        """Test that homepage candidates deeper than two directories are ignored."""
        make_files(tmp_repo, {"a/b/c/index.tsx": "deep"})

        assert not _extract(tmp_repo).has(BrandingSlot.HOMEPAGE)

    def test_homepage_prefers_shallowest(self, tmp_repo: Path, make_files) -> None:
        """Test that the shallowest match wins for the same pattern."""
        make_files(tmp_repo, {"src/app/page.tsx": "deep", "app/page.tsx": "shallow"})

        homepage = _extract(tmp_repo).first(BrandingSlot.HOMEPAGE)

        assert homepage.path == "app/page.tsx"

    def test_layout_takes_two(self, tmp_repo: Path, make_files) -> None:
        """Test that the layout slot keeps up to two entries in pattern order."""
        make_files(
            tmp_repo,
            {"pages/_app.tsx": "a", "app/layout.tsx": "l", "src/App.tsx": "x"},
        )

        layout = _extract(tmp_repo).get(BrandingSlot.LAYOUT)

        assert [e.path for e in layout] == ["app/layout.tsx", "pages/_app.tsx"]

    def test_file_fills_one_slot(self, tmp_repo: Path, make_files) -> None:
        """Test that a file claimed by one slot is not reused by a later one."""
        make_files(tmp_repo, {"shared.css": "body {}"})
        rules = (
            SlotRule(slot=BrandingSlot.THEME_CONFIG, patterns=("shared.css",)),
            SlotRule(slot=BrandingSlot.GLOBAL_STYLES, patterns=("shared.css",)),
        )

        branding = extract_branding(tmp_repo, walk_repository(tmp_repo), None, rules)

        assert branding.has(BrandingSlot.THEME_CONFIG)
        assert not branding.has(BrandingSlot.GLOBAL_STYLES)


class TestCandidatesFor:
    """Tests for candidate ordering."""

    def test_pattern_order_wins_over_depth(self) -> None:
        """Test that earlier patterns come before shallower files."""
        rule = SlotRule(
            slot=BrandingSlot.HOMEPAGE,
            patterns=("page.tsx", "index.html"),
            match=MatchKind.BASENAME,
        )
        files = [_file("index.html"), _file("app/page.tsx")]

        assert [f.path for f in candidates_for(rule, files)] == ["app/page.tsx", "index.html"]

    def test_camel_case_token_match(self) -> None:
        """Test that a fragment matches a word inside a camelCase name."""
        rule = SlotRule(slot=BrandingSlot.NAV_COMPONENT, patterns=("menu",), match=MatchKind.FRAGMENT)

        matched = [f.path for f in candidates_for(rule, [_file("src/MainMenuBar.tsx"), _file("src/Menus.tsx")])]

        assert matched == ["src/MainMenuBar.tsx", "src/Menus.tsx"]


class TestBrandingContext:
    """Tests for BrandingContext serialization."""

    def test_to_dict_shapes(self) -> None:
        """Test that multi-valued slots serialize as lists and absent slots are omitted."""
        branding = BrandingContext(
            slots={
                BrandingSlot.LAYOUT: [BrandingEntry(path="app/layout.tsx", content="l")],
                BrandingSlot.IDENTITY: [BrandingEntry(path="README.md", content="# A")],
            }
        )

        data = branding.to_dict()

        assert list(data) == ["identity", "layout"]
        assert data["identity"] == {"path": "README.md", "content": "# A", "truncated": False}
        assert data["layout"] == [{"path": "app/layout.tsx", "content": "l", "truncated": False}]
