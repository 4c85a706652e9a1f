from pathlib import Path

import pytest

from postrender.build import (
    DEFAULT_CONFIG,
    BuildError,
    ConfigError,
    _format_error_message,
    build_site,
    load_config,
    normalize_config,
)


def write_post(directory: Path, name: str, header: str, body: str = "Body text.\n") -> Path:
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\n{header}---\n{body}", encoding="utf-8")
    return path


def create_blog(tmp_path: Path) -> Path:
    posts = tmp_path / "posts"
    posts.mkdir()
    write_post(
        posts,
        "serialization.md",
        "title: C++ Simple Binary Serialization\n"
        "date: 2020-03-22\n"
        "categories: c++, serialization\n",
        "## Writing\n\n```cpp\nout.write(reinterpret_cast<const char*>(&x), sizeof x);\n```\n",
    )
    write_post(
        posts,
        "2020-04-25-docker-clion.md",
        "title: Docker toolchain for CLion\ncategories: [docker, clion]\n",
        "Setting up a remote toolchain.\n",
    )
    return posts


def read_tree(root: Path) -> dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()
    }


def test_build_site_renders_posts_and_index(tmp_path):
    posts = create_blog(tmp_path)
    out = tmp_path / "out"
    result = build_site(posts, out)

    assert result.ok
    assert result.output_dir == out
    assert sorted(read_tree(out)) == [
        "2020-03-22-cpp-simple-binary-serialization.html",
        "2020-04-25-docker-clion.html",
        "index.html",
    ]
    post_html = (out / "2020-03-22-cpp-simple-binary-serialization.html").read_text(encoding="utf-8")
    assert '<h2 id="writing">Writing</h2>' in post_html
    assert '<div class="highlight">' in post_html

    index_html = (out / "index.html").read_text(encoding="utf-8")
    # Newest first: the April post precedes the March post
    assert index_html.index("Docker toolchain for CLion") < index_html.index(
        "C++ Simple Binary Serialization"
    )
    assert index_html.count('href="2020-03-22-cpp-simple-binary-serialization.html"') == 1
    assert index_html.count('href="2020-04-25-docker-clion.html"') == 1


def test_build_is_idempotent(tmp_path):
    posts = create_blog(tmp_path)
    first = build_site(posts, tmp_path / "one", {"extensions": ["sitemap", "pagination"], "url": "https://x.dev", "paginate": 1})
    snapshot = read_tree(first.output_dir)
    build_site(posts, tmp_path / "one", {"extensions": ["sitemap", "pagination"], "url": "https://x.dev", "paginate": 1})
    second = build_site(posts, tmp_path / "two", {"extensions": ["sitemap", "pagination"], "url": "https://x.dev", "paginate": 1})
    assert read_tree(first.output_dir) == snapshot
    assert read_tree(second.output_dir) == snapshot


def test_post_without_title_is_skipped_and_reported(tmp_path):
    posts = create_blog(tmp_path)
    write_post(posts, "untitled.md", "date: 2021-01-01\n", "Nobody named me.\n")

    result = build_site(posts, tmp_path / "out")
    assert not result.ok
    assert [e.source_path.name for e in result.errors] == ["untitled.md"]
    assert "title" in result.errors[0].message
    assert len(result.posts) == 2
    index_html = (tmp_path / "out" / "index.html").read_text(encoding="utf-8")
    assert "2021-01-01" not in index_html
    assert "Nobody named me" not in index_html


def test_impossible_header_dates_are_per_post_errors(tmp_path):
    posts = create_blog(tmp_path)
    write_post(posts, "bad-month.md", "title: Bad Month\ndate: 2020-13-45\n")
    write_post(posts, "bad-day.md", "title: Bad Day\ndate: 2020-02-30\n")
    out = tmp_path / "out"

    result = build_site(posts, out)
    assert [e.source_path.name for e in result.errors] == ["bad-day.md", "bad-month.md"]
    assert "day is out of range" in result.errors[0].message
    assert "month must be in 1..12" in result.errors[1].message
    assert len(result.posts) == 2
    assert (out / "2020-03-22-cpp-simple-binary-serialization.html").exists()
    assert (out / "2020-04-25-docker-clion.html").exists()
    assert "Bad Month" not in (out / "index.html").read_text(encoding="utf-8")


def test_zero_posts_builds_empty_index(tmp_path):
    posts = tmp_path / "posts"
    posts.mkdir()
    result = build_site(posts, tmp_path / "out")
    assert result.ok
    assert result.posts == []
    index_html = (tmp_path / "out" / "index.html").read_text(encoding="utf-8")
    assert '<ul class="post-list">' in index_html
    assert "<li>" not in index_html


def test_slug_collision_does_not_overwrite_first(tmp_path):
    posts = tmp_path / "posts"
    write_post(posts, "a.md", "title: Same Title\ndate: 2020-01-01\n", "First body.\n")
    write_post(posts, "b.md", "title: Same Title\ndate: 2020-01-01\n", "Second body.\n")
    out = tmp_path / "out"

    result = build_site(posts, out)
    assert [e.source_path.name for e in result.errors] == ["b.md"]
    assert "slug collision" in result.errors[0].message
    html = (out / "2020-01-01-same-title.html").read_text(encoding="utf-8")
    assert "First body." in html
    assert "Second body." not in html
    index_html = (out / "index.html").read_text(encoding="utf-8")
    assert index_html.count("Same Title") == 1


def test_template_failure_is_a_per_post_error(tmp_path):
    posts = create_blog(tmp_path)
    write_post(posts, "fancy.md", "title: Fancy\ndate: 2021-05-05\nlayout: broken\n")
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "broken.html.jinja").write_text("{{ post.missing_field }}", encoding="utf-8")

    result = build_site(posts, tmp_path / "out", {"templates_dir": str(templates)})
    assert [e.source_path.name for e in result.errors] == ["fancy.md"]
    assert result.errors[0].message.startswith("Undefined variable")
    assert not (tmp_path / "out" / "2021-05-05-fancy.html").exists()
    assert "Fancy" not in (tmp_path / "out" / "index.html").read_text(encoding="utf-8")


def test_unpublished_posts(tmp_path):
    posts = create_blog(tmp_path)
    write_post(posts, "wip.md", "title: Work In Progress\ndate: 2021-01-01\npublished: false\n")

    result = build_site(posts, tmp_path / "out")
    assert [p.name for p in result.skipped] == ["wip.md"]
    assert not (tmp_path / "out" / "2021-01-01-work-in-progress.html").exists()

    result = build_site(posts, tmp_path / "out2", include_unpublished=True)
    assert (tmp_path / "out2" / "2021-01-01-work-in-progress.html").exists()


def test_missing_input_dir_is_fatal_and_writes_nothing(tmp_path):
    out = tmp_path / "out"
    with pytest.raises(BuildError) as excinfo:
        build_site(tmp_path / "nope", out)
    assert "input directory not found" in excinfo.value.message
    assert not out.exists()


def test_unwritable_output_dir_is_fatal(tmp_path):
    posts = create_blog(tmp_path)
    blocker = tmp_path / "out"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(posts, blocker)
    assert excinfo.value.path == blocker


def test_clean_output_removes_stale_files(tmp_path):
    posts = create_blog(tmp_path)
    out = tmp_path / "out"
    out.mkdir()
    (out / "stale.html").write_text("old", encoding="utf-8")

    build_site(posts, out)
    assert (out / "stale.html").exists()
    build_site(posts, out, clean_output=True)
    assert not (out / "stale.html").exists()
    assert (out / "index.html").exists()


def test_clean_refuses_to_delete_input(tmp_path):
    posts = create_blog(tmp_path)
    with pytest.raises(BuildError, match="refusing"):
        build_site(posts, tmp_path, clean_output=True)
    assert (posts / "serialization.md").exists()


def test_pagination_and_sitemap_extensions(tmp_path):
    posts = create_blog(tmp_path)
    out = tmp_path / "out"
    config = {"extensions": ["pagination", "sitemap"], "paginate": 1, "url": "https://blog.example"}
    result = build_site(posts, out, config)

    assert (out / "index.html").exists()
    assert (out / "page2" / "index.html").exists()
    assert (out / "sitemap.xml").exists()
    assert out / "sitemap.xml" in result.written
    sitemap = (out / "sitemap.xml").read_text(encoding="utf-8")
    assert "https://blog.example/2020-04-25-docker-clion.html" in sitemap


def test_extensions_off_by_default(tmp_path):
    posts = create_blog(tmp_path)
    out = tmp_path / "out"
    build_site(posts, out, {"paginate": 1, "url": "https://blog.example"})
    assert not (out / "sitemap.xml").exists()
    assert not (out / "page2").exists()


def test_load_config_defaults_and_file(tmp_path):
    assert load_config(project_root=tmp_path) == normalize_config({})
    assert load_config(project_root=tmp_path)["title"] == DEFAULT_CONFIG["title"]

    (tmp_path / "themes").mkdir()
    (tmp_path / "postrender.yaml").write_text(
        "title: Dev Notes\nextensions: [sitemap]\nurl: https://dev.example\ntemplates_dir: themes\n",
        encoding="utf-8",
    )
    config = load_config(project_root=tmp_path)
    assert config["title"] == "Dev Notes"
    assert config["extensions"] == ["sitemap"]
    assert config["paginate"] == 10
    assert Path(config["templates_dir"]) == (tmp_path / "themes").resolve()


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.yaml")

    bad_yaml = tmp_path / "bad.yaml"
    bad_yaml.write_text("title: [oops\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid YAML"):
        load_config(bad_yaml)

    not_mapping = tmp_path / "list.yaml"
    not_mapping.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(not_mapping)


def test_normalize_config_validation():
    assert normalize_config({"extensions": "pagination"})["extensions"] == ["pagination"]
    assert normalize_config({"extensions": ["pagination", "pagination"]})["extensions"] == [
        "pagination"
    ]
    with pytest.raises(ConfigError, match="unknown extension"):
        normalize_config({"extensions": ["feed"]})
    with pytest.raises(ConfigError, match="paginate"):
        normalize_config({"paginate": 0})
    with pytest.raises(ConfigError, match="paginate"):
        normalize_config({"paginate": True})
    with pytest.raises(ConfigError, match="url"):
        normalize_config({"extensions": ["sitemap"]})
    with pytest.raises(ConfigError, match="list"):
        normalize_config({"extensions": {"sitemap": True}})


def test_config_error_happens_before_writing(tmp_path):
    posts = create_blog(tmp_path)
    out = tmp_path / "out"
    with pytest.raises(ConfigError):
        build_site(posts, out, {"extensions": ["feed"]})
    assert not out.exists()


def test_format_error_message():
    assert _format_error_message(ValueError("bad")) == "ValueError: bad"
