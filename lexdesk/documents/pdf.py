"""HTML to PDF rendering for generated documents."""

from __future__ import annotations

import io

import fitz

PAGE_RECT = fitz.paper_rect("a4")
MARGIN = 54
CONTENT_RECT = PAGE_RECT + (MARGIN, MARGIN, -MARGIN, -MARGIN)
DOCUMENT_CSS = "body { font-family: sans-serif; font-size: 11pt; line-height: 1.4; }"


def render_html_pdf(html: str) -> bytes:
    """Lay ``html`` out over as many A4 pages as it needs."""
    buffer = io.BytesIO()
    writer = fitz.DocumentWriter(buffer)
    story = fitz.Story(html=html, user_css=DOCUMENT_CSS)
    more = True
    while more:
        device = writer.begin_page(PAGE_RECT)
        more, _ = story.place(CONTENT_RECT)
        story.draw(device)
        writer.end_page()
    writer.close()
    return buffer.getvalue()
