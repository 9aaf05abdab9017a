"""
PDF Rendering Utilities

Renders a stack report (lines + summary) to PDF bytes.
Uses PyMuPDF (fitz); letter paper with 1 inch margins.
"""

import fitz  # PyMuPDF

# Letter size in points, 1in margins
PAGE_WIDTH = 612
PAGE_HEIGHT = 792
MARGIN = 72

TITLE_SIZE = 18
BODY_SIZE = 11
LINE_SIZE = 9
LINE_GAP = 6

PART_ACCENT = (0.08, 0.40, 0.75)  # blue
SPOOL_ACCENT = (1.0, 0.44, 0.0)  # orange
MUTED = (0.4, 0.4, 0.4)


def _new_page(doc: fitz.Document) -> fitz.Page:
    return doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)


def _draw_header(page: fitz.Page, document) -> float:
    """Title block; returns the y where the part lines start."""
    y = MARGIN
    page.insert_text((MARGIN, y + TITLE_SIZE), "B.O.P Stack Configuration Report", fontsize=TITLE_SIZE, fontname="hebo")
    y += TITLE_SIZE + 8
    page.insert_text(
        (MARGIN, y + BODY_SIZE),
        "Blowout Preventer Stack Assembly Specifications",
        fontsize=BODY_SIZE,
        color=MUTED,
    )
    y += BODY_SIZE + 10
    page.draw_line((MARGIN, y), (PAGE_WIDTH - MARGIN, y), width=1.5)
    y += 16

    meta = [
        f"Stack ID: {document.stack_id}",
        f"Stack Title: {document.title}",
        f"Generated: {document.generated_at:%Y-%m-%d %H:%M:%S} UTC",
    ]
    if document.summary is not None:
        meta.append(f"Total Parts: {document.summary.total_parts}")
    for text in meta:
        page.insert_text((MARGIN, y + BODY_SIZE), text, fontsize=BODY_SIZE)
        y += BODY_SIZE + 4

    return y + 12


def _line_height(text: str) -> float:
    # Courier is 0.6em wide per character
    chars_per_row = int((PAGE_WIDTH - 2 * MARGIN - 12) / (LINE_SIZE * 0.6))
    rows = max(1, -(-len(text) // chars_per_row))
    return rows * (LINE_SIZE + 3) + 8


def render_report_pdf(document) -> bytes:
    """
    Render a report document to PDF.

    Args:
        document: ReportDocument (stack_id, title, generated_at, lines, summary)

    Returns:
        PDF file content
    """
    doc = fitz.open()
    page = _new_page(doc)
    y = _draw_header(page, document)
    bottom = PAGE_HEIGHT - MARGIN

    for line in document.lines:
        height = _line_height(line.text)
        if y + height > bottom:
            page = _new_page(doc)
            y = MARGIN

        accent = SPOOL_ACCENT if line.is_spool else PART_ACCENT
        page.draw_rect(fitz.Rect(MARGIN, y, MARGIN + 4, y + height - 4), color=accent, fill=accent)
        page.insert_textbox(
            fitz.Rect(MARGIN + 10, y + 2, PAGE_WIDTH - MARGIN, y + height),
            line.text,
            fontsize=LINE_SIZE,
            fontname="cour",
        )
        y += height + LINE_GAP

    if document.summary is not None:
        _draw_summary(doc, page, y, document.summary)

    pdf_bytes = doc.tobytes()
    doc.close()
    return pdf_bytes


def _draw_summary(doc, page, y: float, summary) -> None:
    bottom = PAGE_HEIGHT - MARGIN
    columns = [
        ("Total Parts", str(summary.total_parts)),
        ("Pressure Ranges", summary.pressure_range),
        ("Flange Classes", summary.flange_classes),
    ]
    if y + 80 > bottom:
        page = _new_page(doc)
        y = MARGIN

    y += 10
    page.draw_line((MARGIN, y), (PAGE_WIDTH - MARGIN, y), width=0.5, color=MUTED)
    y += 20
    page.insert_text((MARGIN, y), "Summary", fontsize=14, fontname="hebo")
    y += 22

    column_width = (PAGE_WIDTH - 2 * MARGIN) / len(columns)
    for index, (label, value) in enumerate(columns):
        x = MARGIN + index * column_width
        page.insert_text((x, y), label, fontsize=9, color=MUTED, fontname="hebo")
        page.insert_text((x, y + 16), value, fontsize=12, fontname="hebo")
