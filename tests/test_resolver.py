import logging
from pathlib import Path

import pytest

from conftest import write_image
from copy_images import resolver


@pytest.mark.parametrize(
    "reference",
    [
        "https://f.cloud.github.com/assets/4320215/768165/19d8b1aa-e899-11e2-91bc-6b0553e8d722.png",
        "http://example.com/a.png",
        "ftp://example.com/a.png",
        "data:image/png;base64,iVBORw0KGgo=",
    ],
)
def test_external_references_are_recognised(reference):
    assert resolver.is_external_reference(reference)


@pytest.mark.parametrize("reference", ["example1.png", "resources/copy_images/example1.png", "C:/images/a.png"])
def test_local_references_are_not_external(reference):
    assert not resolver.is_external_reference(reference)


def test_parse_resources_absent_is_none():
    assert resolver.parse_resources(None) is None


def test_parse_resources_single_path():
    assert resolver.parse_resources("/tmp/images") == ["/tmp/images"]


def test_parse_resources_multi_valued_trims_and_skips_empty_entries():
    assert resolver.parse_resources(" dummy1 , /tmp/x,, /dummy2 ,") == ["dummy1", "/tmp/x", "/dummy2"]


def test_parse_resources_quoted_entry_keeps_comma():
    assert resolver.parse_resources('a,"b,c",d') == ["a", "b,c", "d"]


def test_parse_resources_empty_string_is_empty_list():
    assert resolver.parse_resources("") == []


def test_build_search_path_without_resources_uses_default_resources_dir(tmp_path):
    search_path = resolver.build_search_path(tmp_path, None)
    assert list(search_path) == [tmp_path, tmp_path / "resources", tmp_path / "resources" / "copy_images"]


def test_build_search_path_orders_configured_entries(tmp_path):
    other = tmp_path / "other"
    search_path = resolver.build_search_path(tmp_path, ["dummy1", str(other), "/dummy2"])
    assert list(search_path) == [
        tmp_path,
        tmp_path / "dummy1",
        other,
        Path("/dummy2"),
        tmp_path / "resources" / "copy_images",
    ]


def test_build_search_path_empty_resources_keeps_doc_dir_and_fallback(tmp_path):
    search_path = resolver.build_search_path(tmp_path, [])
    assert list(search_path) == [tmp_path, tmp_path / "resources" / "copy_images"]


def test_resolve_prefers_document_directory(tmp_path):
    res_dir = tmp_path / "res"
    write_image(tmp_path / "a.png")
    write_image(res_dir / "a.png")
    write_image(tmp_path / "resources" / "copy_images" / "a.png")

    search_path = resolver.build_search_path(tmp_path, [str(res_dir)])
    result = resolver.resolve("a.png", search_path)

    assert result.outcome == resolver.OUTCOME_FOUND
    assert result.path == tmp_path / "a.png"
    assert result.base_dir == tmp_path


def test_resolve_finds_fallback_without_configuration(tmp_path):
    target = write_image(tmp_path / "resources" / "copy_images" / "example1.png")

    result = resolver.resolve("example1.png", resolver.build_search_path(tmp_path, None))

    assert result.found
    assert result.path == target
    assert result.base_dir == tmp_path / "resources" / "copy_images"


def test_resolve_finds_path_reference_in_default_resources_dir(tmp_path):
    target = write_image(tmp_path / "resources" / "copy_images" / "example1.png")

    result = resolver.resolve("copy_images/example1.png", resolver.build_search_path(tmp_path, None))

    assert result.found
    assert result.path == target


def test_resolve_not_found_lists_every_candidate_in_order(tmp_path):
    a, b, c = tmp_path / "a", tmp_path / "b", tmp_path / "c"
    search_path = resolver.SearchPath((a, b, c))

    result = resolver.resolve("missing.png", search_path)

    assert result.outcome == resolver.OUTCOME_NOT_FOUND
    assert result.path is None
    assert result.attempts == [a / "missing.png", b / "missing.png", c / "missing.png"]


def test_resolve_ignores_directories_named_like_the_reference(tmp_path):
    (tmp_path / "a.png").mkdir()
    result = resolver.resolve("a.png", resolver.SearchPath((tmp_path,)))
    assert result.outcome == resolver.OUTCOME_NOT_FOUND


def test_resolve_external_does_not_touch_filesystem(tmp_path, monkeypatch):
    def fail(*_args, **_kwargs):
        raise AssertionError("filesystem accessed")

    monkeypatch.setattr(Path, "is_file", fail)
    result = resolver.resolve("https://example.com/a.png", resolver.SearchPath((tmp_path,)))

    assert result.outcome == resolver.OUTCOME_EXTERNAL
    assert result.attempts == []


def test_parse_resources_malformed_csv_logs_error_and_keeps_entries(log_records):
    assert resolver.parse_resources('a,"b') == ["a", "b"]
    errors = [r.getMessage() for r in log_records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].startswith("Error loading [resources]: ")


def test_parse_resources_valid_csv_logs_nothing(log_records):
    resolver.parse_resources("a,b")
    assert log_records == []


def test_resolve_absolute_reference_lists_each_candidate_once(tmp_path):
    search_path = resolver.build_search_path(tmp_path, ["x", "y"])
    result = resolver.resolve("/nope/x.png", search_path)

    assert result.outcome == resolver.OUTCOME_NOT_FOUND
    assert result.attempts == [Path("/nope/x.png")]
