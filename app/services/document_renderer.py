"""
Rendering of ``GeneratedContent`` into branded PDF and Word documents.

The PDF is drawn top-down on an A4 canvas: a cover block, then numbered
sections (01 Purpose ... 07 Next steps) each headed by a circular badge.
Canvases are created in reportlab's invariant mode and the Word archive is
stamped with the issue date, so the same content and issue date always
produce the same bytes.
"""

import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone

from docx import Document as DocxDocument
from docx.shared import Pt, RGBColor
from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from app.config import Settings, settings
from app.metrics import DOCUMENT_RENDERS
from app.models.strategy import DocumentKind
from app.schemas.content import ActionStep, GeneratedContent, TimelineEntry

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
TOP_MARGIN = 50
PAGE_BREAK_Y = 700
FOOTER_Y = 800
BADGE_X = 60
CONTENT_X = 80
CONTENT_WIDTH = 450
LINE_HEIGHT = 15
TIMELINE_LABEL_WIDTH = 100

BRAND_BLUE = HexColor("#2563eb")
DEADLINE_RED = HexColor("#dc2626")
TEXT_DARK = HexColor("#1f2937")
TEXT_MUTED = HexColor("#6b7280")

DOCX_RED = RGBColor(0xDC, 0x26, 0x26)
DOCX_BLUE = RGBColor(0x25, 0x63, 0xEB)

FOOTER_TEXT = (
    "Resolve for tradies - Empowering you to resolve legal issues "
    "without the legal fees."
)

DOCUMENT_TITLES = {
    DocumentKind.strategy_pack: "Strategy Pack",
    DocumentKind.demand_letter: "Letter of Demand",
    DocumentKind.notice_to_complete: "Notice to Complete",
    DocumentKind.adjudication_application: "Adjudication Application",
}

PURPOSE_TEXT = {
    DocumentKind.strategy_pack: (
        "This document has been created to give you a clear understanding of "
        "your situation, outline the recommended steps to move forward, and "
        "show you exactly how I can support you, without the need for a lawyer."
    ),
    DocumentKind.demand_letter: (
        "This pack explains your position and includes a letter of demand you "
        "can send to recover the amount you are owed."
    ),
    DocumentKind.notice_to_complete: (
        "This pack explains your position and includes a notice requiring the "
        "other party to complete their outstanding obligations."
    ),
    DocumentKind.adjudication_application: (
        "This pack explains your position and includes a draft adjudication "
        "application under the Security of Payment Act."
    ),
}


@dataclass(frozen=True)
class RenderedDocument:
    pdf_bytes: bytes
    pdf_file_name: str
    word_bytes: bytes | None = None
    word_file_name: str | None = None
    # Sections rendered heading-only because the content had nothing for them.
    omitted_sections: tuple[str, ...] = ()


@dataclass
class Section:
    number: str
    title: str
    text: str = ""
    steps: list[ActionStep] = field(default_factory=list)
    timeline: list[TimelineEntry] = field(default_factory=list)
    costs: list[tuple[str, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.text.strip() or self.steps or self.timeline or self.costs)


def build_sections(content: GeneratedContent, kind: DocumentKind) -> list[Section]:
    return [
        Section("01", "Purpose of This Document", text=PURPOSE_TEXT[kind]),
        Section("02", "Welcome", text=content.welcome_message),
        Section("03", "Legal Analysis", text=content.legal_analysis),
        Section(
            "04",
            "How It Works",
            text=content.how_it_works,
            steps=list(content.recommended_actions),
        ),
        Section("05", "Timeline", timeline=list(content.timeline)),
        Section("06", "Cost Estimate", costs=content.cost_estimate.rows()),
        Section("07", "Next Steps", text=content.next_steps),
    ]


def file_stem(case_title: str, kind: DocumentKind) -> str:
    title = re.sub(r"[^A-Za-z0-9]+", "-", case_title).strip("-") or "Case"
    label = DOCUMENT_TITLES[kind].replace(" ", "-")
    return f"Resolve-{label}-{title}"


class DocumentRenderer:
    def __init__(
        self,
        brand_name: str = "RESOLVE",
        brand_tagline: str = "FOR TRADIES. POWERED BY AI",
        footer_text: str = FOOTER_TEXT,
    ):
        self.brand_name = brand_name
        self.brand_tagline = brand_tagline
        self.footer_text = footer_text

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "DocumentRenderer":
        return cls(brand_name=config.brand_name, brand_tagline=config.brand_tagline)

    def render(
        self,
        content: GeneratedContent,
        kind: DocumentKind = DocumentKind.strategy_pack,
        include_word: bool = True,
        issued_on: date | None = None,
    ) -> RenderedDocument:
        issued_on = issued_on or date.today()
        sections = build_sections(content, kind)
        omitted = tuple(f"{s.number} {s.title}" for s in sections if s.is_empty)
        if omitted:
            logger.warning(
                "Rendering '%s' with empty sections: %s",
                content.case_title,
                ", ".join(omitted),
            )

        stem = file_stem(content.case_title, kind)
        pdf_bytes = self.render_pdf(content, kind, issued_on, sections)
        word_bytes = None
        word_file_name = None
        if include_word:
            word_bytes = self.render_word(content, kind, issued_on, sections)
            word_file_name = f"{stem}.docx"

        logger.info(
            "Rendered %s for '%s' (pdf=%d bytes, word=%s)",
            kind.value,
            content.case_title,
            len(pdf_bytes),
            len(word_bytes) if word_bytes is not None else "skipped",
        )
        return RenderedDocument(
            pdf_bytes=pdf_bytes,
            pdf_file_name=f"{stem}.pdf",
            word_bytes=word_bytes,
            word_file_name=word_file_name,
            omitted_sections=omitted,
        )

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    def render_pdf(
        self,
        content: GeneratedContent,
        kind: DocumentKind,
        issued_on: date,
        sections: list[Section] | None = None,
    ) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
        pdf.setTitle(f"{DOCUMENT_TITLES[kind]} - {content.case_title}")
        pdf.setAuthor(self.brand_name)
        pdf.setSubject(content.case_title)

        writer = _PdfWriter(pdf, self.footer_text)
        self._draw_cover(writer, content, kind, issued_on)
        for section in sections or build_sections(content, kind):
            writer.section(section)

        fragment = content.document_templates.get(kind)
        if fragment and fragment.strip():
            writer.new_page()
            writer.heading("A", f"Attachment: {DOCUMENT_TITLES[kind]}")
            writer.paragraph(fragment)

        writer.finish()
        DOCUMENT_RENDERS.labels(format="pdf").inc()
        return buffer.getvalue()

    def _draw_cover(
        self,
        writer: "_PdfWriter",
        content: GeneratedContent,
        kind: DocumentKind,
        issued_on: date,
    ) -> None:
        pdf = writer.pdf
        pdf.setFillColor(BRAND_BLUE)
        pdf.setFont("Helvetica-Bold", 28)
        pdf.drawString(50, writer.to_pdf_y(80), self.brand_name)
        pdf.setFillColor(TEXT_MUTED)
        pdf.setFont("Helvetica", 10)
        pdf.drawString(50, writer.to_pdf_y(98), self.brand_tagline)

        pdf.setFillColor(TEXT_DARK)
        pdf.setFont("Helvetica-Bold", 20)
        pdf.drawString(50, writer.to_pdf_y(140), DOCUMENT_TITLES[kind])
        pdf.setFont("Helvetica", 12)
        pdf.drawString(50, writer.to_pdf_y(162), f"Prepared for {content.client_name}")
        pdf.drawString(50, writer.to_pdf_y(180), content.case_title)
        pdf.setFillColor(TEXT_MUTED)
        pdf.drawString(50, writer.to_pdf_y(198), issued_on.strftime("%d %B %Y"))

        pdf.setStrokeColor(BRAND_BLUE)
        pdf.setLineWidth(1)
        pdf.line(50, writer.to_pdf_y(215), PAGE_WIDTH - 50, writer.to_pdf_y(215))
        writer.y = 240

    # ------------------------------------------------------------------
    # Word
    # ------------------------------------------------------------------

    def render_word(
        self,
        content: GeneratedContent,
        kind: DocumentKind,
        issued_on: date,
        sections: list[Section] | None = None,
    ) -> bytes:
        doc = DocxDocument()
        doc.core_properties.title = f"{DOCUMENT_TITLES[kind]} - {content.case_title}"
        doc.core_properties.author = self.brand_name
        stamp = datetime.combine(issued_on, time.min, tzinfo=timezone.utc)
        doc.core_properties.created = stamp
        doc.core_properties.modified = stamp
        doc.core_properties.last_printed = stamp
        doc.core_properties.revision = 1

        brand = doc.add_paragraph().add_run(self.brand_name)
        brand.bold = True
        brand.font.size = Pt(28)
        brand.font.color.rgb = DOCX_BLUE
        doc.add_paragraph(self.brand_tagline)
        doc.add_heading(DOCUMENT_TITLES[kind], level=0)
        doc.add_paragraph(f"Prepared for {content.client_name}")
        doc.add_paragraph(content.case_title)
        doc.add_paragraph(issued_on.strftime("%d %B %Y"))

        for section in sections or build_sections(content, kind):
            doc.add_heading(f"{section.number}  {section.title}", level=1)
            if section.text.strip():
                for block in section.text.split("\n"):
                    if block.strip():
                        doc.add_paragraph(block.strip())
            for step in section.steps:
                para = doc.add_paragraph()
                para.add_run(f"{step.step}. {step.title}").bold = True
                doc.add_paragraph(step.description)
                doc.add_paragraph(
                    f"Timeframe: {step.timeframe} | Priority: {step.priority}"
                )
            if section.timeline:
                _docx_timeline_table(doc, section.timeline)
            if section.costs:
                table = doc.add_table(rows=0, cols=2)
                table.style = "Table Grid"
                for label, value in section.costs:
                    cells = table.add_row().cells
                    cells[0].paragraphs[0].add_run(label).bold = True
                    cells[1].text = value

        fragment = content.document_templates.get(kind)
        if fragment and fragment.strip():
            doc.add_page_break()
            doc.add_heading(f"Attachment: {DOCUMENT_TITLES[kind]}", level=1)
            for block in fragment.split("\n"):
                doc.add_paragraph(block)

        doc.add_paragraph(self.footer_text)
        buffer = io.BytesIO()
        doc.save(buffer)
        DOCUMENT_RENDERS.labels(format="docx").inc()
        return _pin_zip_timestamps(buffer.getvalue(), issued_on)


def _pin_zip_timestamps(data: bytes, issued_on: date) -> bytes:
    """Rewrite the docx archive so every member carries the issue date."""
    stamp = issued_on.timetuple()[:6]
    out = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(data)) as source, zipfile.ZipFile(
        out, "w", zipfile.ZIP_DEFLATED
    ) as target:
        for member in source.infolist():
            info = zipfile.ZipInfo(member.filename, date_time=stamp)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = member.external_attr
            target.writestr(info, source.read(member.filename))
    return out.getvalue()


def _docx_timeline_table(doc, entries: list[TimelineEntry]) -> None:
    table = doc.add_table(rows=1, cols=3)
    table.style = "Table Grid"
    header = table.rows[0].cells
    for cell, label in zip(header, ("When", "Action", "Deadline")):
        cell.paragraphs[0].add_run(label).bold = True
    for entry in entries:
        cells = table.add_row().cells
        values = (entry.label, entry.action, entry.deadline or "")
        for cell, value in zip(cells, values):
            run = cell.paragraphs[0].add_run(value)
            if entry.is_deadline:
                run.font.color.rgb = DOCX_RED


class _PdfWriter:
    """Top-down cursor over a reportlab canvas with automatic page breaks."""

    def __init__(self, pdf: canvas.Canvas, footer_text: str):
        self.pdf = pdf
        self.footer_text = footer_text
        self.y = TOP_MARGIN

    @staticmethod
    def to_pdf_y(y: float) -> float:
        return PAGE_HEIGHT - y

    def ensure_space(self, height: float) -> None:
        if self.y + height > PAGE_BREAK_Y:
            self.new_page()

    def new_page(self) -> None:
        self._footer()
        self.pdf.showPage()
        self.y = TOP_MARGIN

    def finish(self) -> None:
        self._footer()
        self.pdf.showPage()
        self.pdf.save()

    def _footer(self) -> None:
        self.pdf.setFillColor(TEXT_MUTED)
        self.pdf.setFont("Helvetica-Oblique", 8)
        self.pdf.drawCentredString(PAGE_WIDTH / 2, self.to_pdf_y(FOOTER_Y), self.footer_text)

    def heading(self, number: str, title: str) -> None:
        self.ensure_space(40)
        self.pdf.setFillColor(BRAND_BLUE)
        self.pdf.circle(BADGE_X, self.to_pdf_y(self.y + 10), 12, stroke=0, fill=1)
        self.pdf.setFillColor(white)
        self.pdf.setFont("Helvetica-Bold", 10)
        self.pdf.drawCentredString(BADGE_X, self.to_pdf_y(self.y + 14), number)
        self.pdf.setFillColor(TEXT_DARK)
        self.pdf.setFont("Helvetica-Bold", 14)
        self.pdf.drawString(CONTENT_X, self.to_pdf_y(self.y + 15), title)
        self.y += 32

    def lines(
        self,
        text: str,
        x: float = CONTENT_X,
        width: float = CONTENT_WIDTH,
        font: str = "Helvetica",
        size: int = 11,
        color=TEXT_DARK,
    ) -> None:
        for block in text.split("\n"):
            wrapped = simpleSplit(block, font, size, width) or [""]
            for line in wrapped:
                self.ensure_space(LINE_HEIGHT)
                self.pdf.setFillColor(color)
                self.pdf.setFont(font, size)
                self.pdf.drawString(x, self.to_pdf_y(self.y + size), line)
                self.y += LINE_HEIGHT

    def paragraph(self, text: str) -> None:
        self.lines(text.strip())
        self.y += 8

    def section(self, section: Section) -> None:
        self.heading(section.number, section.title)
        if section.is_empty:
            self.y += 8
            return
        if section.text.strip():
            self.paragraph(section.text)
        for step in section.steps:
            self.lines(f"{step.step}. {step.title}", font="Helvetica-Bold")
            self.lines(step.description)
            self.lines(
                f"Timeframe: {step.timeframe} | Priority: {step.priority}",
                size=9,
                color=TEXT_MUTED,
            )
            self.y += 6
        if section.timeline:
            self._timeline(section.timeline)
        if section.costs:
            self._costs(section.costs)
        self.y += 10

    def _timeline(self, entries: list[TimelineEntry]) -> None:
        self.ensure_space(LINE_HEIGHT * 2)
        self.pdf.setFillColor(TEXT_MUTED)
        self.pdf.setFont("Helvetica-Bold", 10)
        self.pdf.drawString(70, self.to_pdf_y(self.y + 10), "When")
        self.pdf.drawString(180, self.to_pdf_y(self.y + 10), "Action")
        self.y += LINE_HEIGHT + 2
        for entry in entries:
            color = DEADLINE_RED if entry.is_deadline else TEXT_DARK
            label = simpleSplit(entry.label, "Helvetica-Bold", 10, TIMELINE_LABEL_WIDTH)
            action = simpleSplit(entry.action, "Helvetica", 10, 350) or [""]
            rows = max(len(label), len(action))
            self.ensure_space(LINE_HEIGHT * rows)
            self.pdf.setFillColor(color)
            for i in range(rows):
                line_y = self.to_pdf_y(self.y + 10)
                if i < len(label):
                    self.pdf.setFont("Helvetica-Bold", 10)
                    self.pdf.drawString(70, line_y, label[i])
                if i < len(action):
                    self.pdf.setFont("Helvetica", 10)
                    self.pdf.drawString(180, line_y, action[i])
                self.y += LINE_HEIGHT
            if entry.deadline:
                self.lines(entry.deadline, x=180, width=350, size=9, color=color)
            self.y += 4

    def _costs(self, rows: list[tuple[str, str]]) -> None:
        for label, value in rows:
            self.ensure_space(LINE_HEIGHT)
            self.pdf.setFillColor(TEXT_DARK)
            self.pdf.setFont("Helvetica-Bold", 10)
            self.pdf.drawString(70, self.to_pdf_y(self.y + 10), label)
            self.lines(value, x=250, width=280, size=10)
            self.y += 4
