"""Tests for origin fetch and per-file classification."""

import fitz
import pytest

from contextpack.errors import ConfigurationError, TransientFetchError
from contextpack.origin import FolderOrigin, OriginFetchAdapter
from tests.fakes import FakeOrigin

GOOGLE_DOC = "application/vnd.google-apps.document"


def _pdf(text: str = "") -> bytes:
    with fitz.open() as pdf:
        page = pdf.new_page()
        if text:
            page.insert_text((72, 72), text)
        return pdf.tobytes()


@pytest.mark.asyncio
async def test_classifies_each_file():
    origin = FakeOrigin()
    origin.add("d1", "Welcome", GOOGLE_DOC, "Welcome to the course")
    origin.add("d2", "syllabus.pdf", "application/pdf", _pdf("Refund policy applies"), folder="Student")
    origin.add("d3", "scan.pdf", "application/pdf", _pdf())
    origin.add("d4", "logo.png", "image/png", b"\x89PNG")
    origin.add("d5", "archive.zip", "application/zip", b"PK")

    docs = {d.id: d for d in await OriginFetchAdapter(origin).fetch_all()}

    assert set(docs) == {"d1", "d2", "d3", "d4"}
    assert docs["d1"].is_text and docs["d1"].text_content == "Welcome to the course"
    assert docs["d2"].is_text and "Refund policy" in docs["d2"].text_content
    assert docs["d2"].folder_tag == "student"
    assert not docs["d3"].is_text and docs["d3"].binary
    assert not docs["d4"].is_text and docs["d4"].binary == b"\x89PNG"


@pytest.mark.asyncio
async def test_one_failing_file_is_skipped():
    origin = FakeOrigin()
    origin.add("d1", "Good", GOOGLE_DOC, "fine")
    origin.add("d2", "Bad", GOOGLE_DOC, "never read")
    origin.failing_ids.add("d2")

    docs = await OriginFetchAdapter(origin).fetch_all()

    assert [d.name for d in docs] == ["Good"]


@pytest.mark.asyncio
async def test_listing_failure_propagates():
    origin = FakeOrigin()
    origin.fail_listing = True

    with pytest.raises(TransientFetchError):
        await OriginFetchAdapter(origin).fetch_all()


@pytest.mark.asyncio
async def test_folder_origin_tags_by_top_level_folder(tmp_path):
    (tmp_path / "Welcome.md").write_text("# Welcome")
    (tmp_path / "Instructor" / "week1").mkdir(parents=True)
    (tmp_path / "Instructor" / "week1" / "rubric.txt").write_text("Grading rubric")
    (tmp_path / ".hidden").mkdir()
    (tmp_path / ".hidden" / "secret.txt").write_text("nope")

    docs = await OriginFetchAdapter(FolderOrigin(tmp_path)).fetch_all()

    by_name = {d.name: d for d in docs}
    assert set(by_name) == {"Welcome.md", "rubric.txt"}
    assert by_name["Welcome.md"].folder_tag == "public"
    assert by_name["rubric.txt"].folder_tag == "instructor"
    assert by_name["rubric.txt"].id == "Instructor/week1/rubric.txt"
    assert by_name["rubric.txt"].text_content == "Grading rubric"


@pytest.mark.asyncio
async def test_missing_local_folder_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        await OriginFetchAdapter(FolderOrigin(tmp_path / "missing")).fetch_all()
