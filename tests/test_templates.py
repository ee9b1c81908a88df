from datetime import datetime
from pathlib import Path

import pytest

from inkwell.config import load_config, theme_dir
from inkwell.content import ContentUnit, SitePage
from inkwell.errors import TemplateError
from inkwell.templates import ListingEntry, TemplateEngine, listing_entries


def make_page(layout="page", title="Page", day=None, url="/page/", content="<p>Body</p>", kind="page"):
    unit = ContentUnit(
        title=title,
        date=datetime(2025, 2, day) if day else None,
        layout=layout,
        categories=(),
        body="",
        source_path=Path(f"{title.lower()}.md"),
        slug=title.lower(),
        kind=kind,
        excerpt=f"About {title}",
    )
    return SitePage(unit=unit, url=url, content=content)


def make_engine(root, data=None):
    config = load_config(root)
    return TemplateEngine(root, config, theme_dir(root, config.theme), data)


def test_listing_entries_limits_and_formats():
    posts = [make_page("post", f"P{i}", day=10 - i, url=f"/p{i}/", kind="post") for i in range(7)]
    entries = listing_entries(posts)
    assert len(entries) == 5
    assert entries[0] == ListingEntry(
        url="/p0/", title="P0", date_label="February 10, 2025", excerpt="About P0"
    )
    assert [e.title for e in listing_entries(posts, limit=2)] == ["P0", "P1"]
    assert listing_entries([]) == []


def test_render_post_with_bundled_theme(site):
    engine = make_engine(site)
    html = engine.render_page(make_page("post", "Hello", day=5, url="/hello/", kind="post"))
    assert "<p>Body</p>" in html
    assert "February 05, 2025" in html
    assert "<title>Hello | Test Site</title>" in html


def test_home_layout_lists_latest_posts(site):
    engine = make_engine(site)
    posts = [make_page("post", f"P{i}", day=10 - i, url=f"/p{i}/", kind="post") for i in range(3)]
    engine.update_collections(posts)
    html = engine.render_page(make_page("home", "Home", url="/", content=""))
    assert html.index('href="/p0/"') < html.index('href="/p1/"') < html.index('href="/p2/"')
    assert "February 10, 2025" in html


def test_content_is_not_escaped_but_titles_are(site):
    engine = make_engine(site)
    html = engine.render_page(make_page(title="<Tom & Jerry>", content="<em>ok</em>"))
    assert "<em>ok</em>" in html
    assert "&lt;Tom &amp; Jerry&gt;" in html


def test_unknown_layout(site):
    engine = make_engine(site)
    with pytest.raises(TemplateError, match="Unknown layout 'gallery'"):
        engine.render_page(make_page(layout="gallery"))


def test_layout_without_template(site):
    (site / "_themes" / "bare" / "_layouts").mkdir(parents=True)
    (site / "_themes" / "bare" / "_layouts" / "page.html").write_text("{{ content }}", encoding="utf-8")
    config_path = site / "_config.yml"
    config_path.write_text(
        config_path.read_text(encoding="utf-8").replace("theme: minima", "theme: bare"),
        encoding="utf-8",
    )
    engine = make_engine(site)
    assert engine.render_page(make_page()) == "<p>Body</p>"
    with pytest.raises(TemplateError, match="about.html"):
        engine.render_page(make_page(layout="about"))


def test_project_layouts_override_theme(site):
    (site / "_layouts").mkdir()
    (site / "_layouts" / "page.html").write_text(
        "[{{ page.title }}|{{ site.title }}|{{ site.data.author.name }}]", encoding="utf-8"
    )
    engine = make_engine(site, data={"author": {"name": "Ada"}})
    assert engine.render_page(make_page()) == "[Page|Test Site|Ada]"


def test_url_filters_respect_baseurl(site):
    config_path = site / "_config.yml"
    config_path.write_text(
        config_path.read_text(encoding="utf-8") + "url: https://example.com\nbaseurl: /blog\n",
        encoding="utf-8",
    )
    engine = make_engine(site)
    template = engine.env.from_string(
        "{{ '/about/' | relative_url }} {{ 'feed.xml' | absolute_url }} "
        "{{ url_for('https://x.org/') }} {{ 'Hello World' | slugify }}"
    )
    assert template.render() == "/blog/about/ https://example.com/blog/feed.xml https://x.org/ hello-world"


def test_date_to_string_filter(site):
    engine = make_engine(site)
    template = engine.env.from_string("{{ d | date_to_string }}|{{ missing | date_to_string }}")
    assert template.render(d=datetime(2024, 3, 9), missing=None) == "March 09, 2024|"


def test_site_context(site):
    engine = make_engine(site, data={"nav": []})
    engine.update_collections([make_page("post", "P", day=1, url="/p/", kind="post")])
    context = engine.site_context()
    assert context["title"] == "Test Site"
    assert context["data"] == {"nav": []}
    assert len(context["posts"]) == 1
