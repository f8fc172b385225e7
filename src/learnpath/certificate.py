"""
certificate.py — Certificate of completion: data and export documents
=====================================================================
build_certificate_data()   snapshot taken at the moment the last quiz passes
render_certificate_html()  standalone HTML page for download
render_certificate_pdf()   one-page landscape A4 PDF (reportlab), as bytes
certificate_filename()     safe download name, e.g. ``React_Basics_Certificate.html``
write_certificate_files()  both exports written side by side into a directory
"""

from __future__ import annotations

import datetime
import html
import io
import re
import uuid
from pathlib import Path

from learnpath.config import get_settings
from learnpath.models import CertificateData, Course, UserContext


def new_certificate_id() -> str:
    return "CERT-" + uuid.uuid4().hex[:8].upper()


def build_certificate_data(
    ctx: UserContext,
    course: Course,
    issuer: str | None = None,
) -> CertificateData:
    return CertificateData(
        recipient_name  = ctx.name,
        course_name     = course.name,
        duration        = course.duration,
        completion_date = datetime.date.today().isoformat(),
        issuer          = issuer or get_settings().app.certificate_issuer,
        certificate_id  = new_certificate_id(),
    )


def certificate_filename(course_name: str, extension: str = "html") -> str:
    return f"{re.sub(r'[^A-Za-z0-9]', '_', course_name)}_Certificate.{extension}"


def _display_date(iso_date: str) -> str:
    try:
        return datetime.date.fromisoformat(iso_date).strftime("%B %d, %Y")
    except ValueError:
        return iso_date


# ─── HTML ────────────────────────────────────────────────────────────────────

_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>Certificate - {course_name}</title>
  <style>
    body {{ margin: 0; padding: 40px; font-family: Georgia, serif;
           background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); }}
    .certificate {{ background: white; max-width: 800px; margin: 0 auto; padding: 60px;
                   box-shadow: 0 0 30px rgba(0,0,0,0.3); border-radius: 10px; }}
    .header {{ text-align: center; border-bottom: 3px solid #667eea;
              padding-bottom: 30px; margin-bottom: 40px; }}
    .title {{ font-size: 48px; color: #2c3e50; margin: 0; font-weight: bold; }}
    .subtitle {{ font-size: 20px; color: #7f8c8d; margin: 10px 0 0 0; }}
    .content {{ text-align: center; }}
    .recipient {{ font-size: 32px; color: #2980b9; margin: 30px 0; font-weight: bold; }}
    .course {{ font-size: 24px; color: #27ae60; margin: 20px 0; font-style: italic; }}
    .details {{ font-size: 16px; color: #34495e; margin: 30px 0; }}
    .footer {{ margin-top: 50px; text-align: center; border-top: 2px solid #ecf0f1; padding-top: 30px; }}
    .cert-id {{ font-size: 12px; color: #95a5a6; margin-top: 20px; }}
  </style>
</head>
<body>
  <div class="certificate">
    <div class="header">
      <h1 class="title">CERTIFICATE</h1>
      <p class="subtitle">of Completion</p>
    </div>
    <div class="content">
      <p>This is to certify that</p>
      <div class="recipient">{recipient_name}</div>
      <p>has successfully completed the course</p>
      <div class="course">{course_name}</div>
      <div class="details">
        <p>Duration: {duration}</p>
        <p>Completion Date: {completion_date}</p>
      </div>
    </div>
    <div class="footer">
      <p><strong>{issuer}</strong></p>
      <p class="cert-id">Certificate ID: {certificate_id}</p>
    </div>
  </div>
</body>
</html>
"""


def render_certificate_html(data: CertificateData) -> str:
    """Return a standalone HTML certificate; every field is HTML-escaped."""
    return _HTML_TEMPLATE.format(
        recipient_name  = html.escape(data.recipient_name),
        course_name     = html.escape(data.course_name),
        duration        = html.escape(data.duration),
        completion_date = html.escape(_display_date(data.completion_date)),
        issuer          = html.escape(data.issuer),
        certificate_id  = html.escape(data.certificate_id),
    )


# ─── PDF ─────────────────────────────────────────────────────────────────────

def _rl_colour(hex_str: str):
    """Convert a CSS hex colour string to a reportlab Color."""
    from reportlab.lib import colors as rl_colors
    h = hex_str.lstrip("#")
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    r, g, b = int(h[0:2], 16) / 255, int(h[2:4], 16) / 255, int(h[4:6], 16) / 255
    return rl_colors.Color(r, g, b)


def render_certificate_pdf(data: CertificateData) -> bytes:
    """
    Build a one-page landscape certificate.
    Returns raw PDF bytes.
    """
    from reportlab.lib.pagesizes import A4, landscape
    from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
    from reportlab.lib.units import cm
    from reportlab.lib.enums import TA_CENTER
    from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, HRFlowable

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=landscape(A4),
        leftMargin=2.5 * cm, rightMargin=2.5 * cm,
        topMargin=2.0 * cm, bottomMargin=2.0 * cm,
        title=f"Certificate - {data.course_name}",
    )

    styles = getSampleStyleSheet()
    INDIGO = _rl_colour("#667eea")
    DARK   = _rl_colour("#2c3e50")
    MUTED  = _rl_colour("#7f8c8d")
    BLUE   = _rl_colour("#2980b9")
    GREEN  = _rl_colour("#27ae60")

    def centred(name: str, **kw) -> ParagraphStyle:
        return ParagraphStyle(name, parent=styles["Normal"], alignment=TA_CENTER, **kw)

    title     = centred("Title", fontName="Times-Bold", fontSize=40, leading=46, textColor=DARK)
    subtitle  = centred("Subtitle", fontName="Times-Roman", fontSize=18, leading=22, textColor=MUTED)
    body      = centred("Body", fontName="Times-Roman", fontSize=14, leading=18, textColor=DARK)
    recipient = centred("Recipient", fontName="Times-Bold", fontSize=28, leading=34, textColor=BLUE)
    course    = centred("Course", fontName="Times-Italic", fontSize=22, leading=28, textColor=GREEN)
    small     = centred("Small", fontSize=9, leading=12, textColor=MUTED)

    esc = html.escape   # Paragraph parses a mini-markup
    story = [
        Paragraph("CERTIFICATE", title),
        Paragraph("of Completion", subtitle),
        Spacer(1, 0.3 * cm),
        HRFlowable(width="60%", thickness=2, color=INDIGO, hAlign="CENTER"),
        Spacer(1, 0.8 * cm),
        Paragraph("This is to certify that", body),
        Spacer(1, 0.4 * cm),
        Paragraph(esc(data.recipient_name), recipient),
        Spacer(1, 0.4 * cm),
        Paragraph("has successfully completed the course", body),
        Spacer(1, 0.3 * cm),
        Paragraph(esc(data.course_name), course),
        Spacer(1, 0.6 * cm),
        Paragraph(f"Duration: {esc(data.duration)}", body),
        Paragraph(f"Completion Date: {esc(_display_date(data.completion_date))}", body),
        Spacer(1, 1.0 * cm),
        Paragraph(f"<b>{esc(data.issuer)}</b>", body),
        Paragraph(f"Certificate ID: {esc(data.certificate_id)}", small),
    ]

    doc.build(story)
    return buf.getvalue()


def write_certificate_files(data: CertificateData, directory: str | Path = ".") -> tuple[Path, Path]:
    """Write the HTML and PDF exports into *directory*; returns ``(html_path, pdf_path)``."""
    out = Path(directory)
    out.mkdir(parents=True, exist_ok=True)
    html_path = out / certificate_filename(data.course_name, "html")
    pdf_path  = out / certificate_filename(data.course_name, "pdf")
    html_path.write_text(render_certificate_html(data), encoding="utf-8")
    pdf_path.write_bytes(render_certificate_pdf(data))
    return html_path, pdf_path
