"""
Engineering report export: Markdown and PDF renderings of an AnalysisResult.

PDF uses fpdf2 (pure Python, no system dependencies) with the built-in
Helvetica font, so all text goes through _safe() to stay within latin-1.

Sections, in order:
1. Verdict header + summary, risk, domain
2. System Metrics
3. Manufacturability
4. Component Breakdown
5. Physics Laws Applied
6. Key Calculations
7. Detailed Logic
8. Critical Violations
9. Failure Modes
10. Optimizations
"""

from datetime import datetime, timezone

from fpdf import FPDF

from .schemas import AnalysisResult, FailureMode


def _bullets(items) -> str:
    return "\n".join(f"- {item}" for item in items)


def _failure_line(mode: FailureMode) -> str:
    line = f"[{mode.impact.value}] {mode.scenario} (Prob: {mode.probability.value})"
    if mode.mitigation:
        line += f" - Mitigation: {mode.mitigation}"
    return line


def _risk_pct(result: AnalysisResult) -> str:
    return f"{result.risk_score * 100:.0f}%"


def _metric_lines(result: AnalysisResult) -> list:
    scores = result.scores
    return [
        f"Physics: {scores.physics:g}/100",
        f"Engineering: {scores.engineering:g}/100",
        f"Economics: {scores.economics:g}/100",
        f"Safety: {scores.safety:g}/100",
    ]


def report_filename(extension: str) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"AEGIS-report-{stamp}.{extension}"


def render_markdown(result: AnalysisResult) -> str:
    """Markdown report with the same section layout as the on-screen analysis."""
    sections = [
        f"# AEGIS Engineering Report: {result.verdict.value}",
        "",
        f"**Summary:** {result.summary}",
        f"**Risk Score:** {_risk_pct(result)}",
        f"**Domain:** {result.domain.value}",
        "",
        "## System Metrics",
        _bullets(_metric_lines(result)),
        "",
        "## Manufacturability",
        f"- Rating: {result.manufacturability.rating.value}",
        f"- Assessment: {result.manufacturability.assessment}",
        "",
        "## Component Breakdown",
        _bullets(result.component_breakdown),
        "",
        "## Physics Laws Applied",
        _bullets(result.applied_physics_laws),
        "",
        "## Key Calculations",
        _bullets(result.key_calculations),
        "",
        "## Detailed Logic",
        result.reasoning,
        "",
        "## Critical Violations",
        _bullets(result.violated_constraints),
        "",
        "## Failure Modes",
        _bullets(_failure_line(m) for m in result.failure_modes) or "- None predicted",
        "",
        "## Optimizations",
        _bullets(result.optimizations),
    ]
    return "\n".join(sections) + "\n"


def _safe(text: str) -> str:
    """Replace Unicode chars that can't be rendered by built-in PDF fonts (latin-1)."""
    if not text:
        return ""
    return (
        text
        .replace("•", "-")    # bullet
        .replace("—", " - ")  # em dash
        .replace("–", "-")    # en dash
        .replace("“", '"')
        .replace("”", '"')
        .replace("‘", "'")
        .replace("’", "'")
        .replace("≤", "<=")
        .replace("≥", ">=")
        .encode("latin-1", errors="replace")
        .decode("latin-1")
    )


# Verdict header colours (RGB)
VERDICT_COLORS = {
    "FEASIBLE": (22, 163, 74),
    "PLAUSIBLE": (37, 99, 235),
    "IMPLAUSIBLE": (234, 88, 12),
    "IMPOSSIBLE": (220, 38, 38),
}


class ReportPDF(FPDF):
    """A4 engineering report with section bars and a page footer."""

    def __init__(self):
        super().__init__()
        self.set_auto_page_break(auto=True, margin=20)

    def header(self):
        pass  # Title block is drawn once on the first page

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(150, 150, 150)
        self.cell(0, 10, f"AEGIS Engineering Report - Page {self.page_no()}/{{nb}}", align="C")

    def section_header(self, title):
        self.set_font("Helvetica", "B", 11)
        self.set_fill_color(45, 55, 72)
        self.set_text_color(255, 255, 255)
        self.cell(0, 8, f"  {title}", fill=True, new_x="LMARGIN", new_y="NEXT")
        self.set_text_color(0, 0, 0)
        self.ln(2)

    def paragraph(self, text):
        self.set_font("Helvetica", "", 9)
        self.multi_cell(0, 4.5, _safe(text), new_x="LMARGIN", new_y="NEXT")
        self.ln(3)

    def bullet_list(self, items):
        self.set_font("Helvetica", "", 9)
        for item in items:
            self.multi_cell(0, 4.5, _safe(f"- {item}"), new_x="LMARGIN", new_y="NEXT")
        self.ln(3)


def generate_report_pdf(result: AnalysisResult) -> bytes:
    """Render the report as PDF bytes."""
    pdf = ReportPDF()
    pdf.alias_nb_pages()
    pdf.add_page()

    # ── Header ──
    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 10, "AEGIS Engineering Report", new_x="LMARGIN", new_y="NEXT")

    pdf.set_font("Helvetica", "B", 14)
    pdf.set_text_color(*VERDICT_COLORS.get(result.verdict.value, (0, 0, 0)))
    pdf.cell(0, 8, f"Verdict: {result.verdict.value}", new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)

    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 5, _safe(f"Domain: {result.domain.value}"), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 5, f"Risk Score: {_risk_pct(result)}", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 5, f"Generated: {datetime.now(timezone.utc).strftime('%B %d, %Y')}",
             new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)
    pdf.paragraph(result.summary)

    pdf.section_header("SYSTEM METRICS")
    pdf.bullet_list(_metric_lines(result))

    pdf.section_header("MANUFACTURABILITY")
    pdf.bullet_list([
        f"Rating: {result.manufacturability.rating.value}",
        f"Assessment: {result.manufacturability.assessment}",
    ])

    pdf.section_header("COMPONENT BREAKDOWN")
    pdf.bullet_list(result.component_breakdown)

    pdf.section_header("PHYSICS LAWS APPLIED")
    pdf.bullet_list(result.applied_physics_laws)

    pdf.section_header("KEY CALCULATIONS")
    pdf.bullet_list(result.key_calculations)

    pdf.section_header("DETAILED LOGIC")
    pdf.paragraph(result.reasoning)

    pdf.section_header("CRITICAL VIOLATIONS")
    pdf.bullet_list(result.violated_constraints)

    pdf.section_header("FAILURE MODES")
    if result.failure_modes:
        pdf.bullet_list(_failure_line(m) for m in result.failure_modes)
    else:
        pdf.paragraph("None predicted.")

    pdf.section_header("OPTIMIZATIONS")
    pdf.bullet_list(result.optimizations)

    return bytes(pdf.output())
