"""
certification.py — Certification Gate
=====================================
All-or-nothing eligibility check and certificate issuance, plus a printable
PDF rendering of an issued certificate.

---------------------------------------------------------------------------
Eligibility
---------------------------------------------------------------------------
  • The catalog holds at least one lesson, and
  • every lesson of every module is in progress.completed_lessons.
  There is no per-module partial credit: 99 % overall is a rejection.

---------------------------------------------------------------------------
Issuance
---------------------------------------------------------------------------
  Certificate(id="cert-<uuid4 hex>", issued_date=now,
              expiration_date=now + validity_days,
              overall_score_percent=overall_completion(...))
  is appended to progress.certificates and returned.

  Re-issuance policy (PROGRESSION_CERT_REISSUE):
    append  every eligible call appends a new, independent certificate
    reuse   the latest unexpired certificate is returned unchanged

  Ineligible calls return ``Rejected(INCOMPLETE_CURRICULUM, missing_lessons)``
  and never touch the record.

---------------------------------------------------------------------------
Consumers
---------------------------------------------------------------------------
  engine.py            ProgressionEngine.try_issue_certificate()
  demo_progression.py  renders the certificate and writes the PDF
"""

from __future__ import annotations

import io
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Union

from progression.aggregator import overall_completion
from progression.config import Settings, get_settings
from progression.models import Catalog, Certificate, ProgressRecord
from progression.progress_store import append_certificate, utcnow

logger = logging.getLogger(__name__)


# ─── Rejection ───────────────────────────────────────────────────────────────

class RejectionReason(str, Enum):
    INCOMPLETE_CURRICULUM = "incomplete_curriculum"


@dataclass(frozen=True)
class Rejected:
    """Non-fatal, informational refusal to issue a certificate."""
    reason:          RejectionReason
    missing_lessons: list[str] = field(default_factory=list)
    message:         str = ""


# ─── Gate ────────────────────────────────────────────────────────────────────

def missing_lessons(catalog: Catalog, progress: ProgressRecord) -> list[str]:
    """Catalog lessons not yet completed, in catalog order."""
    return [lid for lid in catalog.lesson_ids if lid not in progress.completed_lessons]


def is_eligible(catalog: Catalog, progress: ProgressRecord) -> bool:
    return bool(catalog.lesson_ids) and not missing_lessons(catalog, progress)


def new_certificate_id() -> str:
    return f"cert-{uuid.uuid4().hex}"


def try_issue_certificate(
    catalog: Catalog,
    progress: ProgressRecord,
    *,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> Union[Certificate, Rejected]:
    settings = settings or get_settings()
    now = now or utcnow()

    if not is_eligible(catalog, progress):
        missing = missing_lessons(catalog, progress)
        logger.info(
            "Learner %s: certificate rejected, %d lesson(s) outstanding",
            progress.learner_id, len(missing),
        )
        return Rejected(
            reason=RejectionReason.INCOMPLETE_CURRICULUM,
            missing_lessons=missing,
            message=(
                f"Complete all {len(catalog.lesson_ids)} lessons to earn a certificate; "
                f"{len(missing)} remaining."
                if catalog.lesson_ids else "The catalog has no lessons to certify."
            ),
        )

    if settings.certificate.reuses_existing:
        latest = progress.latest_certificate()
        if latest is not None and latest.is_valid_on(now):
            logger.debug("Learner %s: reusing certificate %s", progress.learner_id, latest.id)
            return latest

    certificate = Certificate(
        id=new_certificate_id(),
        title=settings.certificate.title,
        learner_id=progress.learner_id,
        issued_date=now,
        expiration_date=now + timedelta(days=settings.certificate.validity_days),
        overall_score_percent=overall_completion(catalog, progress),
    )
    append_certificate(progress, certificate, now=now)
    return certificate


# ─── PDF rendering ───────────────────────────────────────────────────────────

def _rl_colour(hex_str: str):
    """Convert a CSS hex colour string to a reportlab Color."""
    from reportlab.lib import colors as rl_colors
    h = hex_str.lstrip("#")
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    r, g, b = int(h[0:2], 16) / 255, int(h[2:4], 16) / 255, int(h[4:6], 16) / 255
    return rl_colors.Color(r, g, b)


def generate_certificate_pdf(
    certificate: Certificate,
    learner_name: Optional[str] = None,
    program_title: Optional[str] = None,
) -> bytes:
    """
    Build a one-page landscape certificate.
    Returns raw PDF bytes.

    Parameters
    ----------
    certificate   : Certificate
    learner_name  : display name (defaults to certificate.learner_id)
    program_title : e.g. Catalog.title, printed under the heading
    """
    from xml.sax.saxutils import escape

    from reportlab.lib import colors as rl_colors
    from reportlab.lib.enums import TA_CENTER
    from reportlab.lib.pagesizes import A4, landscape
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.lib.units import cm
    from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=landscape(A4),
        leftMargin=2.2 * cm, rightMargin=2.2 * cm,
        topMargin=1.8 * cm, bottomMargin=1.8 * cm,
        title=certificate.title,
    )

    styles = getSampleStyleSheet()
    NAVY  = _rl_colour("#1f3a5f")
    GOLD  = _rl_colour("#b8860b")
    DARK  = _rl_colour("#1f2937")
    MUTED = _rl_colour("#6b7280")
    LIGHT = _rl_colour("#f5f7fb")
    WHITE = rl_colors.white

    banner = ParagraphStyle("Banner", parent=styles["Title"],
                            textColor=WHITE, fontSize=26, leading=32, alignment=TA_CENTER)
    centre = ParagraphStyle("Centre", parent=styles["Normal"],
                            textColor=DARK, fontSize=13, leading=18, alignment=TA_CENTER)
    name_style = ParagraphStyle("Name", parent=styles["Heading1"],
                                textColor=NAVY, fontSize=30, leading=36, alignment=TA_CENTER)
    small = ParagraphStyle("Small", parent=styles["Normal"],
                           textColor=MUTED, fontSize=9, leading=12, alignment=TA_CENTER)

    story = []

    # ── Header banner ─────────────────────────────────────────────────────────
    banner_table = Table([[Paragraph(f"<b>{escape(certificate.title)}</b>", banner)]],
                         colWidths=[doc.width])
    banner_table.setStyle(TableStyle([
        ("BACKGROUND",    (0, 0), (-1, -1), NAVY),
        ("TOPPADDING",    (0, 0), (-1, -1), 16),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 16),
    ]))
    story.append(banner_table)
    story.append(Spacer(1, 1.0 * cm))

    # ── Recipient ─────────────────────────────────────────────────────────────
    story.append(Paragraph("This certifies that", centre))
    story.append(Spacer(1, 0.4 * cm))
    story.append(Paragraph(escape(learner_name or certificate.learner_id), name_style))
    story.append(Spacer(1, 0.3 * cm))
    story.append(HRFlowable(width="60%", thickness=1.2, color=GOLD, hAlign="CENTER"))
    story.append(Spacer(1, 0.4 * cm))
    completed_what = escape(program_title) if program_title else "the full curriculum"
    story.append(Paragraph(
        f"has successfully completed <b>{completed_what}</b> "
        f"with an overall completion of <b>{certificate.overall_score_percent}%</b>.",
        centre,
    ))
    story.append(Spacer(1, 1.0 * cm))

    # ── Dates row ─────────────────────────────────────────────────────────────
    date_fmt = "%B %d, %Y"
    dates = Table(
        [
            ["Issued", "Valid until", "Certificate ID"],
            [
                certificate.issued_date.strftime(date_fmt),
                certificate.expiration_date.strftime(date_fmt),
                certificate.id,
            ],
        ],
        colWidths=[doc.width / 3] * 3,
    )
    dates.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), LIGHT),
        ("TEXTCOLOR",  (0, 0), (-1, 0), MUTED),
        ("FONTNAME",   (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE",   (0, 0), (-1, 0), 9),
        ("FONTSIZE",   (0, 1), (-1, 1), 11),
        ("ALIGN",      (0, 0), (-1, -1), "CENTER"),
        ("VALIGN",     (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ("LINEBELOW",  (0, 0), (-1, 0), 0.5, GOLD),
    ]))
    story.append(dates)
    story.append(Spacer(1, 0.8 * cm))
    story.append(Paragraph(
        "Verify this certificate by quoting its ID. It expires on the date shown above.",
        small,
    ))

    doc.build(story)
    return buf.getvalue()
