from __future__ import annotations

import re
from io import BytesIO

from docx import Document
from docx.shared import Pt, RGBColor
from docx.enum.text import WD_ALIGN_PARAGRAPH
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from reportbot.pipeline.errors import RenderError
from reportbot.pipeline.models import RenderedDocument, StudentRecord

PDF_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

HEADER_BLUE = "#0D4080"


def report_filename(student_name: str, extension: str) -> str:
    safe = re.sub(r"[^a-zA-Z0-9]", "_", str(student_name or "").strip()) or "student"
    return f"{safe}_report.{extension}"


def escape(s: str) -> str:
    return str(s).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def subject_rows(record: StudentRecord) -> list[tuple[str, str, str]]:
    rows = []
    for subject in record.subjects():
        score = record.scores.get(subject)
        rows.append((subject, "" if score is None else str(score), record.subject_comments.get(subject, "")))
    return rows


class PdfReportRenderer:
    def __init__(self, school_name: str = "Dorset House School", school_address: tuple[str, ...] = ()):
        self.school_name = school_name
        self.school_address = tuple(school_address)

    def render(self, record: StudentRecord, narrative: str) -> RenderedDocument:
        try:
            content = self._build(record, narrative)
        except Exception as exc:
            raise RenderError(f"PDF rendering failed: {exc}") from exc
        return RenderedDocument(
            content=content,
            filename=report_filename(record.student_name, "pdf"),
            media_type=PDF_MEDIA_TYPE,
            caption=f"Report for {record.student_name}",
        )

    def _build(self, record: StudentRecord, narrative: str) -> bytes:
        buffer = BytesIO()
        styles = getSampleStyleSheet()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=0.9 * inch,
            rightMargin=0.9 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=f"Report for {record.student_name}",
        )

        story = []
        story.append(Paragraph(f"<b>{escape(self.school_name)}</b>", styles["Title"]))
        for line in self.school_address:
            story.append(Paragraph(escape(line), styles["BodyText"]))
        story.append(Spacer(1, 18))

        story.append(Paragraph("<b>Dear Parent,</b>", styles["Heading3"]))
        story.append(Paragraph(
            f"Please find below the latest report for {escape(record.student_name)}.",
            styles["BodyText"],
        ))
        story.append(Spacer(1, 12))

        rows = subject_rows(record)
        if rows:
            table_data = [[Paragraph(f"<b>{h}</b>", styles["BodyText"]) for h in ("Subject", "Score", "Comments")]]
            for subject, score, comment in rows:
                table_data.append([
                    Paragraph(escape(subject), styles["BodyText"]),
                    Paragraph(escape(score), styles["BodyText"]),
                    Paragraph(escape(comment), styles["BodyText"]),
                ])
            t = Table(table_data, colWidths=[1.8 * inch, 0.9 * inch, 3.6 * inch], repeatRows=1)
            t.setStyle(TableStyle([
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(HEADER_BLUE)),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#D9D9D9")),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LEFTPADDING", (0, 0), (-1, -1), 6),
                ("RIGHTPADDING", (0, 0), (-1, -1), 6),
                ("TOPPADDING", (0, 0), (-1, -1), 4),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ]))
            story.append(t)
            story.append(Spacer(1, 18))

        story.append(Paragraph("<b>Longer comments</b>", styles["Heading3"]))
        for line in str(narrative or "").splitlines():
            if line.strip():
                story.append(Paragraph(escape(line.strip()), styles["BodyText"]))

        doc.build(story)
        return buffer.getvalue()


class DocxReportRenderer:
    def __init__(self, school_name: str = "Dorset House School", school_address: tuple[str, ...] = ()):
        self.school_name = school_name
        self.school_address = tuple(school_address)

    def render(self, record: StudentRecord, narrative: str) -> RenderedDocument:
        try:
            content = self._build(record, narrative)
        except Exception as exc:
            raise RenderError(f"Word rendering failed: {exc}") from exc
        return RenderedDocument(
            content=content,
            filename=report_filename(record.student_name, "docx"),
            media_type=DOCX_MEDIA_TYPE,
            caption=f"Report for {record.student_name}",
        )

    def _build(self, record: StudentRecord, narrative: str) -> bytes:
        doc = Document()

        title = doc.add_heading(self.school_name, level=0)
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        for line in self.school_address:
            address = doc.add_paragraph(line)
            address.alignment = WD_ALIGN_PARAGRAPH.RIGHT

        greeting = doc.add_paragraph()
        greeting.add_run("Dear Parent,").bold = True
        doc.add_paragraph(f"Please find below the latest report for {record.student_name}.")

        rows = subject_rows(record)
        if rows:
            table = doc.add_table(rows=1, cols=3)
            table.style = "Table Grid"
            for cell, heading in zip(table.rows[0].cells, ("Subject", "Score", "Comments")):
                run = cell.paragraphs[0].add_run(heading)
                run.bold = True
                run.font.color.rgb = RGBColor(0x0D, 0x40, 0x80)
            for subject, score, comment in rows:
                cells = table.add_row().cells
                cells[0].text = subject
                cells[1].text = score
                cells[2].text = comment

        doc.add_heading("Longer comments", level=2)
        for line in str(narrative or "").splitlines():
            if line.strip():
                paragraph = doc.add_paragraph(line.strip())
                for run in paragraph.runs:
                    run.font.size = Pt(11)

        buffer = BytesIO()
        doc.save(buffer)
        return buffer.getvalue()


def build_renderer(report_format: str, school_name: str, school_address: tuple[str, ...]):
    normalized = str(report_format or "pdf").strip().lower()
    if normalized == "docx":
        return DocxReportRenderer(school_name=school_name, school_address=school_address)
    return PdfReportRenderer(school_name=school_name, school_address=school_address)
