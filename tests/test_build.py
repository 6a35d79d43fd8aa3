import os
from pathlib import Path

import pytest

from cairoblog.build import build_site, iter_post_files, load_config, load_posts
from cairoblog.errors import (
    BoolParseError,
    CantFindIndexTemplate,
    CantFindPostTemplate,
    ConfigError,
    FilesystemError,
    OutputNameConflict,
    PostParseError,
    RenderError,
    UnsafeCleanError,
)

INDEX_TEMPLATE = (
    "<ul>{% for post in posts %}"
    '<li><a href="{{ post.output_filename }}">{{ post.title }}</a> {{ post.date_string }}</li>'
    "{% endfor %}</ul>\n"
)
POST_TEMPLATE = "<h1>{{ title }}</h1>\n{{ source | safe }}\n"


def create_project(tmp_path: Path) -> Path:
    project = tmp_path / "blog"
    (project / "posts").mkdir(parents=True)
    (project / "templates").mkdir()
    (project / "templates" / "index.jinja").write_text(INDEX_TEMPLATE, encoding="utf-8")
    (project / "templates" / "post.jinja").write_text(POST_TEMPLATE, encoding="utf-8")
    write_post(project, "hello.txt", "Hello", "Mon Jan 1 10:00:00 2024", "rust systems", "Body text")
    write_post(project, "later.txt", "Later", "Fri Mar 15 08:30:00 2024", "", "<p>Later body</p>")
    return project


def write_post(project: Path, filename: str, title: str, date: str, tags: str, body: str) -> Path:
    path = project / "posts" / filename
    path.write_text(f"{title}\n{date}\n{tags}\n---\n{body}", encoding="utf-8")
    return path


def list_files(root: Path) -> list[str]:
    return sorted(str(p.relative_to(root)) for p in root.rglob("*"))


def test_build_site_renders_posts_and_index(tmp_path):
    project = create_project(tmp_path)
    build_dir = tmp_path / "build"
    result = build_site(project, build_dir)

    assert list_files(build_dir) == ["hello.html", "index.html", "later.html"]
    assert [p.title for p in result.posts] == ["Later", "Hello"]
    assert result.output_dir == build_dir
    assert result.files[-1] == build_dir / "index.html"

    hello = (build_dir / "hello.html").read_text(encoding="utf-8")
    assert hello == "<h1>Hello</h1>\nBody text\n"
    index = (build_dir / "index.html").read_text(encoding="utf-8")
    assert index.index("later.html") < index.index("hello.html")
    assert "Mon Jan 1 10:00:00 2024" in index


def test_build_leaves_no_staging_directory(tmp_path):
    project = create_project(tmp_path)
    build_site(project, tmp_path / "build")
    assert not [p for p in tmp_path.iterdir() if p.name.startswith(".cairo-staging-")]


def test_build_is_idempotent(tmp_path):
    project = create_project(tmp_path)
    first = tmp_path / "first"
    second = tmp_path / "second"
    build_site(project, first)
    build_site(project, second)
    assert list_files(first) == list_files(second)
    for name in list_files(first):
        assert (first / name).read_bytes() == (second / name).read_bytes()


def test_invalid_post_blocks_whole_build(tmp_path):
    project = create_project(tmp_path)
    write_post(project, "broken.txt", "Broken", "2024-01-02", "x", "body")
    build_dir = tmp_path / "build"
    with pytest.raises(PostParseError) as info:
        build_site(project, build_dir)
    assert info.value.field == "date"
    assert info.value.path == project / "posts" / "broken.txt"
    assert not build_dir.exists()


def test_first_invalid_post_in_name_order_is_reported(tmp_path):
    project = create_project(tmp_path)
    (project / "posts" / "b.txt").write_text("no delimiter", encoding="utf-8")
    (project / "posts" / "a.txt").write_text("A\n---\nbody", encoding="utf-8")
    with pytest.raises(PostParseError) as info:
        build_site(project, tmp_path / "build")
    assert info.value.path.name == "a.txt"
    assert info.value.field == "date"


def test_existing_build_dir_untouched_on_failure(tmp_path):
    project = create_project(tmp_path)
    build_dir = tmp_path / "build"
    build_dir.mkdir()
    (build_dir / "old.html").write_text("old", encoding="utf-8")
    (project / "templates" / "post.jinja").write_text("{{ nope.nope }}", encoding="utf-8")
    with pytest.raises(RenderError):
        build_site(project, build_dir)
    assert list_files(build_dir) == ["old.html"]


def test_missing_index_template_wins_over_valid_posts(tmp_path):
    project = create_project(tmp_path)
    (project / "templates" / "index.jinja").unlink()
    with pytest.raises(CantFindIndexTemplate):
        build_site(project, tmp_path / "build")


def test_missing_post_template(tmp_path):
    project = create_project(tmp_path)
    (project / "templates" / "post.jinja").unlink()
    with pytest.raises(CantFindPostTemplate):
        build_site(project, tmp_path / "build")


def test_gate_runs_before_parsing(tmp_path):
    project = create_project(tmp_path)
    (project / "posts" / "broken.txt").write_text("broken", encoding="utf-8")
    (project / "templates" / "post.jinja").unlink()
    with pytest.raises(CantFindPostTemplate):
        build_site(project, tmp_path / "build")


def test_missing_posts_directory(tmp_path):
    project = create_project(tmp_path)
    for path in (project / "posts").iterdir():
        path.unlink()
    (project / "posts").rmdir()
    with pytest.raises(FilesystemError) as info:
        build_site(project, tmp_path / "build")
    assert str(info.value).startswith("io:")


def test_empty_posts_directory_builds_index_only(tmp_path):
    project = create_project(tmp_path)
    for path in (project / "posts").iterdir():
        path.unlink()
    result = build_site(project, tmp_path / "build")
    assert len(result.posts) == 0
    assert list_files(tmp_path / "build") == ["index.html"]


def test_iter_post_files_skips_hidden_and_directories(tmp_path):
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "b.txt").write_text("", encoding="utf-8")
    (posts / "a.txt").write_text("", encoding="utf-8")
    (posts / ".DS_Store").write_text("", encoding="utf-8")
    (posts / "drafts").mkdir()
    assert [p.name for p in iter_post_files(posts)] == ["a.txt", "b.txt"]


def test_iter_post_files_skips_unreadable_entries(tmp_path, monkeypatch):
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "good.txt").write_text("", encoding="utf-8")
    (posts / "bad.txt").write_text("", encoding="utf-8")

    real_scandir = os.scandir

    class FlakyEntry:
        def __init__(self, entry):
            self.name = entry.name
            self.path = entry.path
            self._entry = entry

        def is_file(self):
            if self.name == "bad.txt":
                raise PermissionError("denied")
            return self._entry.is_file()

    class FlakyScandir:
        def __init__(self, path):
            self._it = real_scandir(path)

        def __enter__(self):
            return (FlakyEntry(e) for e in self._it)

        def __exit__(self, *exc):
            self._it.close()

    monkeypatch.setattr("cairoblog.build.os.scandir", FlakyScandir)
    assert [p.name for p in iter_post_files(posts)] == ["good.txt"]


def test_load_posts_sorted_newest_first(tmp_path):
    project = create_project(tmp_path)
    assert [p.filename for p in load_posts(project)] == ["later.txt", "hello.txt"]


def test_output_name_conflict_between_posts(tmp_path):
    project = create_project(tmp_path)
    write_post(project, "hello.md", "Hello again", "Mon Jan 1 10:00:00 2024", "", "x")
    with pytest.raises(OutputNameConflict) as info:
        build_site(project, tmp_path / "build")
    assert info.value.output_name == "hello.html"
    assert len(info.value.paths) == 2
    assert not (tmp_path / "build").exists()


def test_post_named_index_conflicts_with_index_page(tmp_path):
    project = create_project(tmp_path)
    write_post(project, "index.txt", "Index", "Mon Jan 1 10:00:00 2024", "", "x")
    with pytest.raises(OutputNameConflict) as info:
        build_site(project, tmp_path / "build")
    assert info.value.output_name == "index.html"


def test_build_dir_created_with_parents(tmp_path):
    project = create_project(tmp_path)
    build_dir = tmp_path / "out" / "nested"
    build_site(project, build_dir)
    assert (build_dir / "index.html").exists()


def test_build_dir_not_created_when_disabled(tmp_path):
    project = create_project(tmp_path)
    (project / "cairo.yaml").write_text("create_build_dir: false\n", encoding="utf-8")
    with pytest.raises(FilesystemError):
        build_site(project, tmp_path / "build")
    assert not (tmp_path / "build").exists()


def test_clean_output_removes_stale_files(tmp_path):
    project = create_project(tmp_path)
    build_dir = tmp_path / "build"
    (build_dir / "stale").mkdir(parents=True)
    (build_dir / "stale" / "page.html").write_text("old", encoding="utf-8")
    (build_dir / "old.html").write_text("old", encoding="utf-8")

    build_site(project, build_dir, clean_output=False)
    assert (build_dir / "old.html").exists()

    build_site(project, build_dir, clean_output=True)
    assert list_files(build_dir) == ["hello.html", "index.html", "later.html"]


def test_clean_refuses_build_dir_containing_source(tmp_path):
    project = create_project(tmp_path)
    with pytest.raises(UnsafeCleanError, match="refusing to clean"):
        build_site(project, tmp_path, clean_output=True)
    assert (project / "posts" / "hello.txt").exists()


def test_site_config_is_available_to_templates(tmp_path):
    project = create_project(tmp_path)
    (project / "cairo.yaml").write_text("site:\n  title: My Blog\n", encoding="utf-8")
    (project / "templates" / "index.jinja").write_text("{{ site.title }}", encoding="utf-8")
    build_site(project, tmp_path / "build")
    assert (tmp_path / "build" / "index.html").read_text(encoding="utf-8") == "My Blog"


def test_load_config_defaults(tmp_path):
    config = load_config(tmp_path, environ={})
    assert config == {"create_build_dir": True, "clean_build_dir": False, "site": {}}


def test_load_config_file_and_environment(tmp_path):
    (tmp_path / "cairo.yaml").write_text(
        "clean_build_dir: 'true'\nsite:\n  author: Haze\n", encoding="utf-8"
    )
    config = load_config(tmp_path, environ={"CAIRO_CREATE_BUILD_DIR": "false"})
    assert config["clean_build_dir"] is True
    assert config["create_build_dir"] is False
    assert config["site"] == {"author": "Haze"}


def test_load_config_rejects_bad_boolean(tmp_path):
    with pytest.raises(BoolParseError) as info:
        load_config(tmp_path, environ={"CAIRO_CLEAN_BUILD_DIR": "yes"})
    assert str(info.value).startswith("cli parse error:")


def test_load_config_rejects_invalid_yaml(tmp_path):
    (tmp_path / "cairo.yaml").write_text("site: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path, environ={})


def test_load_config_rejects_non_mapping(tmp_path):
    (tmp_path / "cairo.yaml").write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path, environ={})


def test_output_path_that_is_a_directory_fails(tmp_path):
    project = create_project(tmp_path)
    build_dir = tmp_path / "build"
    (build_dir / "hello.html").mkdir(parents=True)
    with pytest.raises(FilesystemError) as info:
        build_site(project, build_dir)
    assert isinstance(info.value.original_error, IsADirectoryError)
    assert list_files(build_dir) == ["hello.html"]


def test_clean_replaces_directory_at_output_path(tmp_path):
    project = create_project(tmp_path)
    build_dir = tmp_path / "build"
    (build_dir / "hello.html").mkdir(parents=True)
    build_site(project, build_dir, clean_output=True)
    assert (build_dir / "hello.html").is_file()


def fail_publishing(monkeypatch, name):
    import shutil

    real_move = shutil.move

    def flaky_move(src, dst):
        if ".cairo-staging-" in src and Path(src).name == name:
            raise OSError("disk full")
        return real_move(src, dst)

    monkeypatch.setattr("cairoblog.build.shutil.move", flaky_move)


def test_failed_clean_publish_restores_previous_site(tmp_path, monkeypatch):
    project = create_project(tmp_path)
    build_dir = tmp_path / "build"
    (build_dir / "stale").mkdir(parents=True)
    (build_dir / "stale" / "page.html").write_text("old page", encoding="utf-8")
    (build_dir / "hello.html").write_text("old hello", encoding="utf-8")
    fail_publishing(monkeypatch, "index.html")

    with pytest.raises(FilesystemError):
        build_site(project, build_dir, clean_output=True)

    assert list_files(build_dir) == ["hello.html", "stale", "stale/page.html"]
    assert (build_dir / "hello.html").read_text(encoding="utf-8") == "old hello"
    assert not [p for p in tmp_path.iterdir() if p.name.startswith(".cairo-")]


def test_failed_publish_restores_overwritten_files(tmp_path, monkeypatch):
    project = create_project(tmp_path)
    build_dir = tmp_path / "build"
    build_dir.mkdir()
    (build_dir / "later.html").write_text("old later", encoding="utf-8")
    fail_publishing(monkeypatch, "index.html")

    with pytest.raises(FilesystemError):
        build_site(project, build_dir)

    assert list_files(build_dir) == ["later.html"]
    assert (build_dir / "later.html").read_text(encoding="utf-8") == "old later"


def test_output_name_conflict_ignores_case(tmp_path):
    project = create_project(tmp_path)
    write_post(project, "HELLO.md", "Shouting", "Mon Jan 1 10:00:00 2024", "", "x")
    with pytest.raises(OutputNameConflict) as info:
        build_site(project, tmp_path / "build")
    assert len(info.value.paths) == 2
    assert not (tmp_path / "build").exists()
