# file: app/services/prompts.py
from __future__ import annotations
import random
from typing import Dict, List, Optional, Sequence
from app.errors import ValidationError
from app.schema import Company, GenerationResult, Investor

SYSTEM_PROMPTS: Dict[str, str] = {
    "initial": (
        "You are an expert at writing personalized, professional investor outreach emails that get responses. "
        "Write compelling, concise emails that highlight relevant connections between the startup and investor. "
        "Be professional but personable and avoid overly salesy language."
    ),
    "follow_up": (
        "You are an expert at writing professional follow-up emails to investors. "
        "Write concise, value-driven follow-ups that provide updates and maintain engagement without being pushy."
    ),
    "response": (
        "You are an expert at writing professional responses to investor inquiries. "
        "Be responsive and helpful, provide requested information clearly and include next steps."
    ),
}

WORD_LIMITS = {"initial": 200, "follow_up": 150, "response": 250}

FOLLOW_UP_INSTRUCTIONS = {
    "gentle": "Write a gentle follow-up that provides value and maintains interest",
    "urgent": "Write a more direct follow-up with time-sensitive information",
    "update": "Write a follow-up focused on sharing important company updates",
    "meeting": "Write a follow-up to schedule or reschedule a meeting",
}

SUBJECT_LINE_TEMPLATES: Dict[str, List[str]] = {
    "initial": [
        "{company} x {firm} - Partnership Opportunity",
        "Quick intro: {company} ({industry})",
        "{company} - {stage} {industry} startup",
        "Partnership opportunity: {company}",
        "{company} - Aligns with your {stage} focus",
        "Introduction: {company} founder",
        "{company} - {industry} solution you might find interesting",
    ],
    "follow_up": [
        "Re: {company} partnership opportunity",
        "Following up: {company} updates",
        "{company} - Quick update",
        "Re: Our conversation about {company}",
        "{company} - New developments",
    ],
    "response": [
        "Re: {company} information request",
        "{company} - Additional details",
        "Re: Due diligence materials",
        "{company} - Requested information",
        "{company} x {firm} - Next steps",
    ],
}

NOT_SPECIFIED = "Not specified"

def _text(value: Optional[str]) -> str:
    return (value or "").strip()

def _message_type(message_type: Optional[str]) -> str:
    return message_type if message_type in SYSTEM_PROMPTS else "initial"

def validate_prompt_inputs(investor: Optional[Investor], company: Optional[Company]) -> List[str]:
    """Names of required fields that are missing or blank, in a stable order"""
    missing = []
    for field in ("name", "firm", "investment_thesis"):
        if investor is None or not _text(getattr(investor, field, None)):
            missing.append(f"investor.{field}")
    for field in ("name", "description", "industry"):
        if company is None or not _text(getattr(company, field, None)):
            missing.append(f"company.{field}")
    return missing

def ensure_prompt_inputs(investor: Optional[Investor], company: Optional[Company]) -> None:
    missing = validate_prompt_inputs(investor, company)
    if missing:
        raise ValidationError(missing)

def build_outreach_prompt(
    investor: Investor,
    company: Company,
    notes: str = "",
    message_type: str = "initial",
    *,
    previous_message: Optional[str] = None,
    follow_up_type: str = "gentle",
    new_updates: Optional[str] = None,
    inquiry_type: Optional[str] = None,
    questions: Sequence[str] = (),
    attachments: Sequence[str] = (),
) -> str:
    """
    Assemble the user prompt for one email. The model is asked for the body only.
    Raises ValidationError listing every missing required field.
    """
    ensure_prompt_inputs(investor, company)
    message_type = _message_type(message_type)
    heading = {
        "initial": "Write a personalized investor outreach email with the following details:",
        "follow_up": "Write a professional follow-up email to an investor with the following details:",
        "response": "Write a professional response email to an investor inquiry with the following details:",
    }[message_type]

    sections = [
        heading,
        "\n".join([
            "INVESTOR INFORMATION:",
            f"- Name: {_text(investor.name)}",
            f"- Firm: {_text(investor.firm)}",
            f"- Investment Thesis: {_text(investor.investment_thesis)}",
            f"- Stage Focus: {_text(investor.stage_focus) or NOT_SPECIFIED}",
            f"- Check Size: {_text(investor.check_size) or NOT_SPECIFIED}",
        ]),
        "\n".join([
            "COMPANY INFORMATION:",
            f"- Name: {_text(company.name)}",
            f"- Industry: {_text(company.industry)}",
            f"- Stage: {_text(company.stage) or NOT_SPECIFIED}",
            f"- Description: {_text(company.description)}",
            f"- Funding Ask: {_text(company.funding_ask) or NOT_SPECIFIED}",
        ]),
    ]

    if message_type == "follow_up":
        flavour = follow_up_type if follow_up_type in FOLLOW_UP_INSTRUCTIONS else "gentle"
        sections.append(f"FOLLOW-UP TYPE: {flavour} - {FOLLOW_UP_INSTRUCTIONS[flavour]}")
        if _text(previous_message):
            sections.append(f"PREVIOUS MESSAGE CONTEXT:\n{previous_message.strip()}")
        if _text(new_updates):
            sections.append(f"NEW UPDATES TO SHARE:\n{new_updates.strip()}")
    elif message_type == "response":
        sections.append(f"INQUIRY TYPE: {_text(inquiry_type) or 'General inquiry'}")
        if questions:
            sections.append("SPECIFIC QUESTIONS TO ADDRESS:\n" + "\n".join(f"- {q}" for q in questions))
        if attachments:
            sections.append("ATTACHMENTS TO MENTION:\n" + "\n".join(f"- {a}" for a in attachments))

    if notes and notes.strip():
        sections.append(f"ADDITIONAL CONTEXT:\n{notes}")

    requirements = [
        f"- Keep it under {WORD_LIMITS[message_type]} words",
        "- Be professional but personable; avoid overly salesy language",
        "- Highlight specific connections between the company and the investor's thesis",
        "- End with a clear call-to-action for a brief meeting",
        "- Make it feel personal, not templated",
        "- Do not invent a subject line",
    ]
    if message_type == "follow_up":
        requirements.append("- Reference the previous conversation naturally")
    elif message_type == "response":
        requirements.append("- Address every question and mention any attachments naturally")
    sections.append("REQUIREMENTS:\n" + "\n".join(requirements))

    if message_type == "initial":
        sections.append("\n".join([
            "EMAIL STRUCTURE:",
            "1. Personalized greeting",
            "2. Brief introduction of yourself and company",
            "3. Explain why this investor is a good fit (reference their thesis)",
            "4. Highlight key traction/achievements",
            "5. Clear ask for a meeting",
            "6. Professional closing",
        ]))

    sections.append("Write only the email body.")
    return "\n\n".join(sections).strip()

def generate_subject_line(
    company: Company,
    investor: Investor,
    message_type: str = "initial",
    rng: Optional[random.Random] = None,
) -> str:
    templates = SUBJECT_LINE_TEMPLATES[_message_type(message_type)]
    template = (rng or random).choice(templates)
    values = {
        "{company}": _text(company.name),
        "{firm}": _text(investor.firm),
        "{industry}": _text(company.industry),
        "{stage}": _text(company.stage),
    }
    for token, value in values.items():
        template = template.replace(token, value)
    return " ".join(template.split())

def render_fallback_message(
    investor: Investor,
    company: Company,
    notes: str = "",
    message_type: str = "initial",
    rng: Optional[random.Random] = None,
) -> GenerationResult:
    """Deterministic body built by direct substitution, used when the model is unavailable"""
    message_type = _message_type(message_type)
    name = _text(investor.name) or "there"
    firm = _text(investor.firm)
    company_name = _text(company.name)
    industry = _text(company.industry)
    stage = _text(company.stage) or "early"
    focus = _text(_text(investor.investment_thesis).split(",")[0]) or industry
    stage_focus = _text(investor.stage_focus) or stage
    extra = f"\nAdditional context: {notes.strip()}\n" if notes and notes.strip() else ""

    if message_type == "follow_up":
        body = f"""Hi {name},

I wanted to follow up on my earlier note about {company_name}.

Since we last spoke we have kept building in the {industry} space, and I think the progress is relevant to {firm}'s focus on {focus}.
{extra}
Would you have 15 minutes in the next couple of weeks to catch up?

Best regards,
[Your Name]
Founder, {company_name}"""
    elif message_type == "response":
        body = f"""Hi {name},

Thank you for your interest in {company_name} and for reaching out on behalf of {firm}.

{company_name} is {_text(company.description)}

I'm happy to share any additional materials you need, including our pitch deck and key metrics.
{extra}
Would a 30-minute call next week work to walk through the details?

Best regards,
[Your Name]
Founder, {company_name}"""
    else:
        body = f"""Hi {name},

I hope this email finds you well. My name is [Your Name], and I'm the founder of {company_name}.

I've been following {firm}'s work in {industry}, particularly your focus on {focus}. Your recent investments align perfectly with what we're building.

{company_name} is {_text(company.description)}

What makes us particularly interesting:
• We're operating in the {industry} space at the {stage} stage
• Our approach to solving this problem is unique because [specific differentiator]
• We've achieved [key metric/milestone] in just [timeframe]
{extra}
Given {firm}'s track record with {stage_focus} companies and focus on companies like ours, I believe there could be a strong strategic fit.

I'd love to share more about our vision and discuss how we align with your investment thesis. Would you be available for a brief 15-minute call next week?

Best regards,
[Your Name]
Founder, {company_name}
[your-email@company.com]"""

    return GenerationResult(
        message=body,
        subject=generate_subject_line(company, investor, message_type, rng=rng),
        usage=None,
    )
