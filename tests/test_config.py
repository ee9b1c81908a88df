import pytest

from inkwell.config import MarkdownEngine, SiteConfig, load_config, load_data, theme_dir
from inkwell.errors import ConfigError


def write_config(root, text):
    root.mkdir(parents=True, exist_ok=True)
    (root / "_config.yml").write_text(text, encoding="utf-8")
    return root


def test_load_config_defaults(site):
    config = load_config(site)
    assert isinstance(config, SiteConfig)
    assert config.theme == "minima"
    assert config.markdown is MarkdownEngine.KRAMDOWN
    assert config.permalink == "/:year/:month/:day/:title/"
    assert config.title == "Test Site"
    assert config.output_dir == "_site"
    assert config.port == 4000
    assert config.ws_port is None
    assert "README.md" in config.exclude


def test_load_config_normalizes_urls_and_keeps_extra(tmp_path):
    root = write_config(
        tmp_path,
        "theme: minima\nmarkdown: GFM\npermalink: pretty\n"
        "url: https://example.com/\nbaseurl: blog/\nauthor: Ada\ndestination: public\n",
    )
    config = load_config(root)
    assert config.markdown is MarkdownEngine.GFM
    assert config.permalink == "/:categories/:year/:month/:day/:title/"
    assert config.url == "https://example.com"
    assert config.baseurl == "/blog"
    assert config.output_dir == "public"
    assert config.extra == {"author": "Ada"}
    assert config.as_context()["author"] == "Ada"
    assert config.as_context()["markdown"] == "gfm"


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path)


def test_missing_permalink_is_config_error(tmp_path):
    root = write_config(tmp_path, "theme: minima\nmarkdown: kramdown\n")
    with pytest.raises(ConfigError) as excinfo:
        load_config(root)
    assert "permalink" in excinfo.value.message
    assert excinfo.value.source_path == root / "_config.yml"
    assert excinfo.value.kind == "Config"


@pytest.mark.parametrize(
    "text, fragment",
    [
        ("- just\n- a list\n", "mapping"),
        ("theme: [unclosed\n", "Invalid YAML"),
        ("theme: nope\nmarkdown: kramdown\npermalink: date\n", "Unknown theme"),
        ("theme: minima\nmarkdown: textile\npermalink: date\n", "Unknown markdown engine"),
        ("theme: minima\nmarkdown: kramdown\npermalink: /:week/\n", ":week"),
        ("theme: minima\nmarkdown: kramdown\npermalink: date\nport: abc\n", "integers"),
        ("theme: minima\nmarkdown: kramdown\npermalink: date\nexclude: 3\n", "exclude"),
    ],
)
def test_invalid_config(tmp_path, text, fragment):
    root = write_config(tmp_path, text)
    with pytest.raises(ConfigError, match=fragment):
        load_config(root)


def test_theme_dir_prefers_project_theme(tmp_path):
    assert theme_dir(tmp_path, "minima").name == "minima"
    local = tmp_path / "_themes" / "minima" / "_layouts"
    local.mkdir(parents=True)
    assert theme_dir(tmp_path, "minima") == tmp_path / "_themes" / "minima"
    assert theme_dir(tmp_path, "missing") is None
    assert theme_dir(tmp_path, "../minima") is None


def test_load_data(tmp_path):
    data_dir = tmp_path / "_data"
    data_dir.mkdir()
    (data_dir / "navigation.yml").write_text("- title: About\n  url: /about/\n", encoding="utf-8")
    (data_dir / "empty.yaml").write_text("", encoding="utf-8")
    data = load_data(tmp_path)
    assert data["navigation"] == [{"title": "About", "url": "/about/"}]
    assert data["empty"] == {}


def test_load_data_invalid_yaml(tmp_path):
    data_dir = tmp_path / "_data"
    data_dir.mkdir()
    (data_dir / "bad.yml").write_text("key: [oops\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_data(tmp_path)


def test_load_data_without_directory(tmp_path):
    assert load_data(tmp_path) == {}
