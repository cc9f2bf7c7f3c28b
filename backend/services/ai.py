"""
AI service: Gemini calls for the optional assistant features.
  - priority suggestion for a call description (few-shot, single digit out)
  - PCR narrative from raw field notes
  - shift handover summary over open incidents
  - end-of-day insights over today's calls
  - location briefing for ambulance access
None of these are on the critical path: routes catch failures and fall back
to an "Error: ..." message. Uses the google-genai SDK (client.models.generate_content).
"""

import re

from google import genai
from google.genai import types

# Import config so we can switch model in one place.
from config import GEMINI_API_KEY, GEMINI_INSIGHTS_MODEL, GEMINI_MODEL
from services.analytics import incident_age
from services.system_prompt import SYSTEM_INSTRUCTION

# -----------------------------------------------------------------------------
# Gemini client (lazy init on first use so we don't fail if key is missing at import).
# -----------------------------------------------------------------------------
_client = None

MIN_DESCRIPTION_LENGTH = 10


def _get_client():
    """Return configured Gemini client; initializes on first call."""
    global _client
    if _client is None:
        if not GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY is not set")
        _client = genai.Client(api_key=GEMINI_API_KEY)
    return _client


def _generate(prompt: str, model: str = GEMINI_MODEL) -> str:
    client = _get_client()
    response = client.models.generate_content(
        model=model,
        contents=prompt,
        config=types.GenerateContentConfig(system_instruction=SYSTEM_INSTRUCTION),
    )
    return (response.text or "").strip()


# -----------------------------------------------------------------------------
# Priority classification. 1 = life threatening ... 4 = non-urgent.
# -----------------------------------------------------------------------------

FEW_SHOT_PRIORITY = [
    # (description, expected_priority)
    ("Husband collapsed, not breathing, no pulse.", "1"),
    ("Crushing chest pain spreading to left arm, sweating.", "1"),
    ("Fell off a ladder, leg looks broken, conscious.", "2"),
    ("Deep cut on hand from kitchen knife, bleeding controlled.", "2"),
    ("Minor fender bender, driver complaining of a stiff neck.", "3"),
    ("Child with a fever of 39C since this morning.", "3"),
    ("Needs help getting back into bed, no injuries.", "4"),
]


def suggest_priority(description: str):
    """
    Classify a call description into priority 1-4.
    Returns None when the description is too short to judge or the model
    answers with anything other than a single digit 1-4.
    """
    if not description or len(description.strip()) < MIN_DESCRIPTION_LENGTH:
        return None

    few_shot_block = "\n".join(f"Description: {d}\nPriority: {p}" for d, p in FEW_SHOT_PRIORITY)
    prompt = f"""Analyze the following emergency description and classify it into one of four priority levels.
Priority 1: Life-threatening (e.g., cardiac arrest, not breathing, severe bleeding, chest pain).
Priority 2: Serious, not immediately life-threatening (e.g., broken bones, fall, deep cut).
Priority 3: Urgent, not life-threatening (e.g., minor car accident, sprain, fever).
Priority 4: Non-urgent.

Examples:
{few_shot_block}

Only respond with a single digit: 1, 2, 3, or 4.
Description: "{description.strip()}"
Priority:"""
    text = _generate(prompt)
    match = re.fullmatch(r"[1-4]", text)
    return int(match.group(0)) if match else None


def generate_pcr_narrative(fields: dict, incident_description: str = "") -> str:
    """Turn raw PCR field notes into a professional, chronological narrative."""
    def value(key):
        return (fields.get(key) or "").strip() or "Not specified"

    raw_notes = (
        f"Vitals: {value('patientVitals')}.\n"
        f"Treatments: {value('treatmentsAdministered')}.\n"
        f"Medications: {value('medications')}.\n"
        f"Notes: {value('notes')}.\n"
        f"Destination: {value('transferDestination')}.\n"
        f"Incident: {incident_description or 'Not specified'}"
    )
    prompt = f"""You are an expert paramedic writing a patient care report. Convert the following raw notes into a professional, concise narrative suitable for an official PCR. Use standard medical terminology and abbreviations (e.g., "c/o" for "complains of", "Hx" for "history"). Ensure the narrative is clear, objective, and chronologically ordered.

Raw Notes:
{raw_notes}"""
    return _generate(prompt)


def generate_handover_summary(open_calls, teams, now=None) -> str:
    """Bullet-point handover for the next shift supervisor."""
    if not open_calls:
        return "No open incidents for summary."
    team_names = {t.id: t.name for t in teams}
    incident_lines = "\n".join(
        f"- P{c.priority} at {c.location} ({c.status.value}) assigned to "
        f"{team_names.get(c.assigned_team_id, 'Unassigned')}. Age: {incident_age(c.timestamp, now)}. "
        f"Desc: {c.description}"
        for c in open_calls
    )
    prompt = f"""You are a shift supervisor for an EMS team. Based on the following list of open incidents, write a brief, actionable handover summary for the next shift supervisor. Use bullet points. Highlight high-priority calls and any calls that have been open for a long time.

Incidents:
{incident_lines}"""
    return _generate(prompt)


def generate_eod_insights(calls) -> str:
    """Two or three operational insights over the day's calls (markdown)."""
    if not calls:
        return "No calls today to analyze."
    call_lines = "\n".join(
        f"Call at {c.timestamp.strftime('%H:%M:%S')} to {c.location} for \"{c.description}\", "
        f"Priority {c.priority}, Status {c.status.value}."
        for c in calls
    )
    prompt = f"""You are an EMS operations analyst. Analyze the following call data for the day and provide a brief summary with 2-3 key insights. Look for trends, geographic clusters of incidents, unusual patterns in call types or priorities, and suggest one operational improvement. Keep the response concise and in markdown format.

Data:
{call_lines}"""
    return _generate(prompt, model=GEMINI_INSIGHTS_MODEL)


def location_briefing(location: str) -> str:
    """Access challenges for an ambulance at the location, plus the nearest hospitals."""
    if not location or not location.strip():
        raise ValueError("location is required")
    prompt = f"""For the emergency location "{location.strip()}", provide a quick summary of potential access challenges for an ambulance and list the nearest hospitals. Keep it under 120 words."""
    return _generate(prompt)
