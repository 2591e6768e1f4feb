import io
import zipfile
from datetime import date
from unittest.mock import MagicMock, patch

from docx import Document as DocxDocument

from app.models.strategy import DocumentKind
from app.schemas.content import CaseIntake, GeneratedContent, TimelineEntry
from app.services.content_generator import fallback_content
from app.services.document_renderer import (
    DocumentRenderer,
    _PdfWriter,
    build_sections,
    file_stem,
)

ISSUED = date(2026, 10, 19)


def _content(**overrides) -> GeneratedContent:
    intake = CaseIntake(
        client_name="Jamie Test",
        client_email="jamie@example.com",
        case_title="Unpaid invoice / stage 3",
        issue_type="payment_dispute",
        description="Final claim unpaid.",
        amount="15000",
    )
    content = fallback_content(intake)
    return content.model_copy(update=overrides)


class TestRender:
    def test_pdf_is_byte_identical_for_same_inputs(self):
        renderer = DocumentRenderer()
        first = renderer.render(_content(), issued_on=ISSUED)
        second = renderer.render(_content(), issued_on=ISSUED)
        assert first.pdf_bytes == second.pdf_bytes
        assert first.word_bytes == second.word_bytes
        assert first.pdf_bytes.startswith(b"%PDF")

    def test_word_bytes_ignore_wall_clock(self):
        renderer = DocumentRenderer()
        with patch("time.time", return_value=1_700_000_000):
            first = renderer.render(_content(), issued_on=ISSUED)
        with patch("time.time", return_value=1_800_000_000):
            second = renderer.render(_content(), issued_on=ISSUED)
        assert first.word_bytes == second.word_bytes
        with zipfile.ZipFile(io.BytesIO(first.word_bytes)) as archive:
            stamps = {info.date_time for info in archive.infolist()}
        assert stamps == {(2026, 10, 19, 0, 0, 0)}
        doc = DocxDocument(io.BytesIO(first.word_bytes))
        assert doc.core_properties.created.date() == ISSUED

    def test_file_names(self):
        rendered = DocumentRenderer().render(_content(), issued_on=ISSUED)
        assert rendered.pdf_file_name == "Resolve-Strategy-Pack-Unpaid-invoice-stage-3.pdf"
        assert rendered.word_file_name == "Resolve-Strategy-Pack-Unpaid-invoice-stage-3.docx"

    def test_word_can_be_skipped(self):
        rendered = DocumentRenderer().render(_content(), include_word=False, issued_on=ISSUED)
        assert rendered.word_bytes is None
        assert rendered.word_file_name is None

    def test_complete_content_omits_nothing(self):
        rendered = DocumentRenderer().render(_content(), issued_on=ISSUED)
        assert rendered.omitted_sections == ()

    def test_empty_sections_reported(self):
        content = _content(timeline=[], next_steps="")
        rendered = DocumentRenderer().render(content, issued_on=ISSUED)
        assert rendered.omitted_sections == ("05 Timeline", "07 Next Steps")
        assert rendered.pdf_bytes.startswith(b"%PDF")

    def test_long_content_spans_pages(self):
        long_text = "Detailed analysis of the payment dispute. " * 400
        rendered = DocumentRenderer().render(
            _content(legal_analysis=long_text), include_word=False, issued_on=ISSUED
        )
        pdf = rendered.pdf_bytes
        pages = pdf.count(b"/Type /Page") - pdf.count(b"/Type /Pages")
        assert pages >= 3


class TestWord:
    def test_sections_and_tables(self):
        rendered = DocumentRenderer().render(_content(), issued_on=ISSUED)
        doc = DocxDocument(io.BytesIO(rendered.word_bytes))
        headings = [p.text for p in doc.paragraphs if p.style.name == "Heading 1"]
        assert headings == [
            "01  Purpose of This Document",
            "02  Welcome",
            "03  Legal Analysis",
            "04  How It Works",
            "05  Timeline",
            "06  Cost Estimate",
            "07  Next Steps",
        ]
        timeline = doc.tables[0]
        assert [row.cells[0].text for row in timeline.rows] == [
            "When",
            "Day 0",
            "Day 10",
            "Day 11-15",
        ]

    def test_deadline_rows_are_red(self):
        rendered = DocumentRenderer().render(_content(), issued_on=ISSUED)
        doc = DocxDocument(io.BytesIO(rendered.word_bytes))
        day_10 = doc.tables[0].rows[2].cells[0].paragraphs[0].runs[0]
        day_0 = doc.tables[0].rows[1].cells[0].paragraphs[0].runs[0]
        assert str(day_10.font.color.rgb) == "DC2626"
        assert day_0.font.color.rgb is None

    def test_template_fragment_appended_for_kind(self):
        rendered = DocumentRenderer().render(
            _content(), kind=DocumentKind.demand_letter, issued_on=ISSUED
        )
        doc = DocxDocument(io.BytesIO(rendered.word_bytes))
        texts = [p.text for p in doc.paragraphs]
        assert "Attachment: Letter of Demand" in texts


class TestSections:
    def test_order_follows_content(self):
        content = _content()
        sections = build_sections(content, DocumentKind.strategy_pack)
        steps = sections[3].steps
        assert [s.step for s in steps] == [1, 2, 3]
        assert [t.label for t in sections[4].timeline] == ["Day 0", "Day 10", "Day 11-15"]

    def test_file_stem_handles_blank_title(self):
        assert file_stem("!!!", DocumentKind.notice_to_complete) == (
            "Resolve-Notice-to-Complete-Case"
        )


class TestPdfTimeline:
    def test_long_labels_wrap_instead_of_truncating(self):
        pdf = MagicMock()
        writer = _PdfWriter(pdf, "footer")
        label = "Within 10 business days of service"
        writer._timeline([TimelineEntry(label=label, action="Serve the payment schedule")])
        label_lines = [
            c.args[2] for c in pdf.drawString.call_args_list if c.args[0] == 70
        ]
        assert label_lines[0] == "When"
        assert len(label_lines) > 2
        assert " ".join(label_lines[1:]) == label
