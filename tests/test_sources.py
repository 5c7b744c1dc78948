import subprocess

import pytest

from fullpage_capture import sources
from fullpage_capture.config import DEFAULT_URL
from fullpage_capture.errors import EnvironmentUnavailableError, UnsupportedInputError, UnsupportedSchemeError
from fullpage_capture.sources import read_text_from_file, read_urls_from_file, resolve_seed_urls


def test_reads_txt_and_md_files(write_file):
    txt = write_file("targets.txt", "\n".join([
        "https://example.com",
        "membershealth.ca/Discovery",
        "invalid-url",
        "https://example.com",
    ]))
    md = write_file("targets.md", "\n".join([
        "# Targets",
        "- https://example.com/contact",
        "- [Docs](https://docs.example.com/start)",
    ]))

    assert read_urls_from_file(txt) == ["https://example.com/", "https://membershealth.ca/Discovery"]
    assert read_urls_from_file(md) == ["https://example.com/contact", "https://docs.example.com/start"]


def test_unsupported_extension_names_the_file(write_file):
    path = write_file("targets.csv", "https://example.com")
    with pytest.raises(UnsupportedInputError, match="targets.csv"):
        read_text_from_file(path)


def test_missing_file_names_the_file(tmp_path):
    with pytest.raises(UnsupportedInputError, match="nope.txt"):
        read_urls_from_file(tmp_path / "nope.txt")


def test_file_without_urls_is_an_error(write_file):
    path = write_file("empty.md", "# Nothing to see\n\njust notes\n")
    with pytest.raises(UnsupportedInputError, match="No URLs found in file: .*empty.md"):
        read_urls_from_file(path)


def test_resolve_seeds_merges_positional_then_files(write_file):
    first = write_file("a.txt", "https://example.com/blog\nmembershealth.ca/Discovery")
    second = write_file("b.md", "[Blog](https://example.com/blog)\nhttps://example.com/careers")

    seeds = resolve_seed_urls(["example.com", "https://example.com/#top"], [first, second])
    assert seeds == (
        "https://example.com/",
        "https://example.com/blog",
        "https://membershealth.ca/Discovery",
        "https://example.com/careers",
    )


def test_resolve_seeds_defaults_when_nothing_given():
    assert resolve_seed_urls([], []) == (DEFAULT_URL,)


def test_resolve_seeds_rejects_bad_positional_url():
    with pytest.raises(UnsupportedSchemeError):
        resolve_seed_urls(["ftp://example.com"], [])


def test_word_file_without_converter(monkeypatch, tmp_path):
    path = tmp_path / "targets.docx"
    path.write_bytes(b"PK\x03\x04")
    monkeypatch.setattr(sources.shutil, "which", lambda name: None)

    with pytest.raises(EnvironmentUnavailableError) as info:
        read_urls_from_file(path)
    assert "pandoc" in str(info.value)
    assert "targets.docx" in str(info.value)


def test_word_file_uses_first_working_converter(monkeypatch, tmp_path):
    path = tmp_path / "targets.doc"
    path.write_bytes(b"\xd0\xcf\x11\xe0")
    monkeypatch.setattr(sources.shutil, "which", lambda name: f"/usr/bin/{name}" if name != "textutil" else None)
    seen = []

    def fake_run(argv, **kwargs):
        seen.append(argv[0])
        if argv[0] == "antiword":
            return subprocess.CompletedProcess(argv, 1, stdout="", stderr="not a Word document")
        return subprocess.CompletedProcess(argv, 0, stdout="Pages:\nhttps://example.com/a\nexample.com/b\n", stderr="")

    monkeypatch.setattr(sources.subprocess, "run", fake_run)
    assert read_urls_from_file(path) == ["https://example.com/a", "https://example.com/b"]
    assert seen == ["antiword", "catdoc"]


def test_word_file_all_converters_fail(monkeypatch, tmp_path):
    path = tmp_path / "targets.doc"
    path.write_bytes(b"junk")
    monkeypatch.setattr(sources.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(
        sources.subprocess, "run",
        lambda argv, **kwargs: subprocess.CompletedProcess(argv, 2, stdout="", stderr="bad file"),
    )
    with pytest.raises(UnsupportedInputError, match="Could not extract text from .*targets.doc"):
        read_urls_from_file(path)
