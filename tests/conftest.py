from pathlib import Path

import pytest

CONFIG = (
    "title: Test Site\n"
    "description: A site for tests\n"
    "theme: minima\n"
    "markdown: kramdown\n"
    "permalink: /:year/:month/:day/:title/\n"
)


def post_text(title="A Post", date="2025-01-01", body="Hello there.", **extra):
    lines = ["---"]
    if title is not None:
        lines.append(f'title: "{title}"')
    if date is not None:
        lines.append(f"date: {date}")
    for key, value in extra.items():
        lines.append(f"{key}: {value}")
    lines.append("---")
    return "\n".join(lines) + f"\n\n{body}\n"


@pytest.fixture
def site(tmp_path) -> Path:
    """A minimal valid project using the bundled theme."""
    root = tmp_path / "blog"
    (root / "_posts").mkdir(parents=True)
    (root / "_config.yml").write_text(CONFIG, encoding="utf-8")
    return root


@pytest.fixture
def write_post():
    def _write(root: Path, name: str, folder: str = "_posts", **kwargs) -> Path:
        path = root / folder / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(post_text(**kwargs), encoding="utf-8")
        return path

    return _write
