"""Placeholder substitution in .docx report templates."""

import io
from collections.abc import Iterator

from docx import Document
from docx.shared import Inches
from docx.table import Table
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from .exceptions import UpstreamServiceError


def _table_paragraphs(table: Table) -> Iterator[Paragraph]:
    for row in table.rows:
        for cell in row.cells:
            yield from cell.paragraphs
            for nested in cell.tables:
                yield from _table_paragraphs(nested)


def _replace_in_paragraph(paragraph: Paragraph, placeholder: str, text: str) -> Run:
    """Replace a placeholder and return the run that now holds its position."""
    for run in paragraph.runs:
        if placeholder in run.text:
            run.text = run.text.replace(placeholder, text)
            return run

    # Word split the placeholder across runs; collapse them into the first one
    runs = paragraph.runs
    if not runs:
        return paragraph.add_run(text)
    runs[0].text = paragraph.text.replace(placeholder, text)
    for run in runs[1:]:
        run.text = ""
    return runs[0]


class ReportDocument:
    """A report opened from template bytes."""

    def __init__(self, content: bytes):
        self.document = Document(io.BytesIO(content))

    def iter_paragraphs(self) -> Iterator[Paragraph]:
        """Yield every paragraph in the body, tables, headers and footers.

        Merged table cells repeat their paragraphs.
        """
        sources = [self.document.paragraphs]
        sources.extend(_table_paragraphs(table) for table in self.document.tables)
        for section in self.document.sections:
            for part in (section.header, section.footer):
                # Linked parts have no definition of their own; reading one would add it
                if part.is_linked_to_previous:
                    continue
                sources.append(part.paragraphs)
                sources.extend(_table_paragraphs(table) for table in part.tables)

        for source in sources:
            yield from source

    def find_paragraph(self, placeholder: str) -> Paragraph | None:
        """Find the first paragraph containing a placeholder."""
        for paragraph in self.iter_paragraphs():
            if placeholder in paragraph.text:
                return paragraph
        return None

    def replace_text(self, placeholder: str, text: str) -> int:
        """
        Replace a placeholder everywhere in the document.

        Returns:
            Number of replacements made

        Raises:
            UpstreamServiceError: Replacement text contains the placeholder
        """
        if placeholder in text:
            raise UpstreamServiceError(f"Replacement text contains the placeholder {placeholder}")

        changed = 0
        for paragraph in self.iter_paragraphs():
            for _ in range(paragraph.text.count(placeholder)):
                if placeholder not in paragraph.text:
                    break
                _replace_in_paragraph(paragraph, placeholder, text)
                changed += 1
        return changed

    def insert_images(
        self,
        placeholder: str,
        images: list[bytes],
        width_inches: float,
    ) -> bool:
        """
        Replace a placeholder with one or more inline images.

        Several images share the placeholder's run and sit side by side.
        Only the width is set so each image keeps its aspect ratio.

        Returns:
            False when the placeholder is not in the document
        """
        paragraph = self.find_paragraph(placeholder)
        if paragraph is None:
            return False

        run = _replace_in_paragraph(paragraph, placeholder, "")
        for index, image in enumerate(images):
            if index:
                run.add_text(" ")
            run.add_picture(io.BytesIO(image), width=Inches(width_inches))
        return True

    def to_bytes(self) -> bytes:
        """Serialize the document."""
        buffer = io.BytesIO()
        self.document.save(buffer)
        return buffer.getvalue()
