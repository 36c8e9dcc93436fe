"""Narrative prompt construction and response parsing."""

from src.core.exceptions import UpstreamServiceError

from .models import PeakTrough, PeriodMetrics

SUMMARY_MARKER = "[[SUMMARY]]"
END_MARKER = "[[END]]"

SYSTEM_PROMPT = (
    "You are an analyst writing the monthly usage summary of a customer-facing chat assistant. "
    "Write in plain, factual English for a non-technical audience. Do not invent numbers."
)


def percent_change(current: int, previous: int) -> str:
    """Format the change from previous to current."""
    if previous == 0:
        return "n/a (no data for the previous month)"
    change = (current - previous) / previous * 100
    return f"{change:+.1f}%"


def build_narrative_prompt(
    current: PeriodMetrics,
    reference: PeriodMetrics,
    peak_trough: PeakTrough,
) -> str:
    """Build the narrative request for one target month."""
    return f"""Write one short section (two or three paragraphs) summarising chat assistant usage for {current.label}.

Metrics for {current.label}:
- Sessions: {current.total_sessions} ({reference.label}: {reference.total_sessions}, change {percent_change(current.total_sessions, reference.total_sessions)})
- Questions: {current.total_questions} ({reference.label}: {reference.total_questions}, change {percent_change(current.total_questions, reference.total_questions)})
- Sessions on weekdays: {current.weekday_total}
- Sessions on weekends: {current.weekend_total}
- Busiest day of the week: {peak_trough.peak_label} ({peak_trough.peak_count} sessions)
- Quietest day of the week: {peak_trough.trough_day} ({peak_trough.trough_count} sessions)

Compare the month with {reference.label} and comment on the weekday and weekend pattern.
Start the section with the line {SUMMARY_MARKER} and end it with the line {END_MARKER}.
Do not write anything outside these markers."""


def extract_marked_section(response: str) -> str:
    """
    Return the text between the summary markers.

    The end marker is optional; without it everything after the start
    marker is used.

    Raises:
        UpstreamServiceError: Start marker missing or the section is empty
    """
    start = response.find(SUMMARY_MARKER)
    if start == -1:
        raise UpstreamServiceError(f"Narrative response is missing the {SUMMARY_MARKER} marker")

    section = response[start + len(SUMMARY_MARKER):]
    end = section.find(END_MARKER)
    if end != -1:
        section = section[:end]

    section = section.strip()
    if not section:
        raise UpstreamServiceError("Narrative response has an empty summary section")
    return section
