from pathlib import Path

from inkwell.config import MarkdownEngine
from inkwell.renderers import HTMLRenderer, MarkdownRenderer, RendererRegistry


def test_headings_get_unique_ids():
    html = MarkdownRenderer().render("# Intro\n\n## Intro\n\n## Details, more\n")
    assert '<h1 id="intro">Intro</h1>' in html
    assert '<h2 id="intro-1">Intro</h2>' in html
    assert 'id="details-more"' in html


def test_heading_ids_do_not_leak_between_documents():
    renderer = MarkdownRenderer()
    renderer.render("# Intro\n")
    assert '<h1 id="intro">' in renderer.render("# Intro\n")


def test_relative_images_point_at_assets():
    html = MarkdownRenderer().render("![cat](./cat.png) ![dog](https://x.org/dog.png)")
    assert 'src="/assets/images/cat.png"' in html
    assert 'src="https://x.org/dog.png"' in html


def test_relative_images_respect_baseurl():
    html = RendererRegistry(MarkdownEngine.KRAMDOWN, "/blog").get_renderer(Path("post.md")).render(
        "![cat](cat.png) ![logo](/logo.png)"
    )
    assert 'src="/blog/assets/images/cat.png"' in html
    assert 'src="/logo.png"' in html


def test_code_blocks_are_highlighted():
    html = MarkdownRenderer().render("```python\nprint('hi')\n```\n")
    assert 'class="highlight"' in html


def test_unknown_code_language_is_escaped():
    html = MarkdownRenderer().render("```notalanguage\n<b>x</b>\n```\n")
    assert '<code class="language-notalanguage">&lt;b&gt;x&lt;/b&gt;' in html


def test_engines_differ_in_extensions():
    source = "~~gone~~\n\n- [x] done\n"
    kramdown = MarkdownRenderer(MarkdownEngine.KRAMDOWN).render(source)
    gfm = MarkdownRenderer(MarkdownEngine.GFM).render(source)
    plain = MarkdownRenderer(MarkdownEngine.MISTUNE).render(source)
    assert "<del>gone</del>" in kramdown
    assert "<del>gone</del>" in gfm
    assert "task-list-item" in gfm
    assert "task-list-item" not in kramdown
    assert "<del>" not in plain


def test_kramdown_tables_and_footnotes():
    html = MarkdownRenderer(MarkdownEngine.KRAMDOWN).render(
        "| a | b |\n|---|---|\n| 1 | 2 |\n\nText[^1].\n\n[^1]: Note.\n"
    )
    assert "<table>" in html
    assert "footnote" in html


def test_rendering_is_deterministic():
    source = "# Title\n\nSome text with `code`.\n\n```python\nx = 1\n```\n"
    assert MarkdownRenderer().render(source) == MarkdownRenderer().render(source)


def test_html_passthrough():
    assert HTMLRenderer().render("<p>raw</p>") == "<p>raw</p>"


def test_registry_selects_by_extension():
    registry = RendererRegistry(MarkdownEngine.GFM)
    assert isinstance(registry.get_renderer(Path("a.md")), MarkdownRenderer)
    assert isinstance(registry.get_renderer(Path("a.markdown")), MarkdownRenderer)
    assert isinstance(registry.get_renderer(Path("a.html")), HTMLRenderer)
    assert registry.get_renderer(Path("a.txt")) is None
    assert registry.get_renderer(Path("a.md")).engine is MarkdownEngine.GFM
