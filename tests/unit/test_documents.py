"""Report template substitution tests."""

import io

import pytest
from docx import Document

from src.core.documents import ReportDocument
from src.core.exceptions import UpstreamServiceError


def reopen(document: ReportDocument) -> Document:
    return Document(io.BytesIO(document.to_bytes()))


def test_replaces_text_everywhere(template_factory):
    document = ReportDocument(template_factory(["Report {{MONTH_YEAR}}", "Footer {{MONTH_YEAR}}", "Other"]))

    assert document.replace_text("{{MONTH_YEAR}}", "September 2026") == 2

    texts = [p.text for p in reopen(document).paragraphs if p.text]
    assert texts == ["Report September 2026", "Footer September 2026", "Other"]


def test_placeholder_split_across_runs():
    source = Document()
    paragraph = source.add_paragraph("Intro: ")
    paragraph.add_run("{{NARR")
    paragraph.add_run("ATIVE}}")
    buffer = io.BytesIO()
    source.save(buffer)

    document = ReportDocument(buffer.getvalue())
    document.replace_text("{{NARRATIVE}}", "All good.")

    texts = [p.text for p in reopen(document).paragraphs if p.text]
    assert texts == ["Intro: All good."]


def test_replaces_inside_tables():
    source = Document()
    source.add_table(rows=1, cols=1).cell(0, 0).text = "Total: {{TOTAL}}"
    buffer = io.BytesIO()
    source.save(buffer)

    document = ReportDocument(buffer.getvalue())
    assert document.replace_text("{{TOTAL}}", "42")

    assert reopen(document).tables[0].cell(0, 0).text == "Total: 42"


def test_missing_placeholder(template_factory, png):
    document = ReportDocument(template_factory(["Nothing here"]))

    assert document.replace_text("{{NARRATIVE}}", "x") == 0
    assert document.find_paragraph("{{CHART}}") is None
    assert document.insert_images("{{CHART}}", [png], 6.0) is False


def test_inserts_single_image(template_factory, png):
    document = ReportDocument(template_factory(["{{CHART}}"]))

    assert document.insert_images("{{CHART}}", [png], 6.0)

    result = reopen(document)
    assert len(result.inline_shapes) == 1
    assert abs(result.inline_shapes[0].width.inches - 6.0) < 0.01
    assert not any("{{CHART}}" in p.text for p in result.paragraphs)


def test_side_by_side_images_share_paragraph(template_factory, png):
    document = ReportDocument(template_factory(["{{PAIR}}"]))

    document.insert_images("{{PAIR}}", [png, png], 3.0)

    result = reopen(document)
    assert len(result.inline_shapes) == 2
    assert len([p for p in result.paragraphs if "<w:drawing" in p._p.xml]) == 1
    # Width set alone keeps the aspect ratio
    shape = result.inline_shapes[0]
    assert shape.height < shape.width


def test_replacement_echoing_placeholder_is_rejected(template_factory):
    document = ReportDocument(template_factory(["{{NARRATIVE}}"]))

    with pytest.raises(UpstreamServiceError, match="NARRATIVE"):
        document.replace_text("{{NARRATIVE}}", "Summary: {{NARRATIVE}}")
