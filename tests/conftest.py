"""Pytest fixtures for retools tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

import pytest

from retools.config import RetoolsConfig


def write_files(root: Path, files: dict[str, str]) -> None:
    """Create files (and parent directories) below root."""
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


@pytest.fixture
def tmp_repo(tmp_path: Path) -> Path:
    """Create an empty repository working tree."""
    repo = tmp_path / "repo"
    repo.mkdir()
    return repo


@pytest.fixture
def next_repo(tmp_repo: Path) -> Path:
    """Create a small Next.js repository with typical branding files.

    Layout:
    - package.json with next/react dependencies
    - README.md
    - tailwind.config.ts and app/globals.css
    - app/layout.tsx, app/page.tsx
    - components/Navbar.tsx, components/Footer.tsx
    """
    manifest = {
        "name": "acme-site",
        "description": "Marketing site for Acme",
        "dependencies": {"next": "14.2.0", "react": "18.3.0", "react-dom": "18.3.0"},
        "devDependencies": {"typescript": "5.4.0", "tailwindcss": "3.4.0"},
    }
    write_files(
        tmp_repo,
        {
            "package.json": json.dumps(manifest, indent=2),
            "README.md": "# Acme\n\nThe Acme marketing site.\n",
            "tailwind.config.ts": "export default { theme: { extend: { colors: { brand: '#ff5a00' } } } }\n",
            "app/globals.css": ":root { --brand: #ff5a00; }\n",
            "app/layout.tsx": "export default function RootLayout({ children }) { return <html>{children}</html> }\n",
            "app/page.tsx": "export default function Home() { return <main>Acme</main> }\n",
            "components/Navbar.tsx": "export function Navbar() { return <nav>Acme</nav> }\n",
            "components/Footer.tsx": "export function Footer() { return <footer /> }\n",
        },
    )
    return tmp_repo


@pytest.fixture
def default_config() -> RetoolsConfig:
    """Create a default retools configuration."""
    return RetoolsConfig.default()


@pytest.fixture
def make_files():
    """Return a helper that writes a {path: content} mapping below a root."""
    return write_files
