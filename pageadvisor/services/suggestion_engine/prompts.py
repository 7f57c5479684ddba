"""Prompt construction for suggestion generation and best-of-N selection."""

from __future__ import annotations

import json
import math
from typing import List, Sequence

from .models import PageSnapshot, Suggestion, SuggestionCandidate
from .refinement import section_key

PROMPT_VERSION = "v2.0"

# Only the most recent pending titles go into the prompt
MAX_EXISTING_TITLES = 3

MIN_CANDIDATES = 5
MAX_CANDIDATES = 7

LOW_TRAFFIC_VIEWS = 100
LOW_CONVERSION_RATE = 2.0
LONG_BIO_WORDS = 100
SHORT_BIO_WORDS = 20

SYSTEM_PROMPT = f"""You are an expert conversion copywriter reviewing a personal landing page. Your job is to propose specific, content-only changes that will improve conversions and engagement.

HARD CONSTRAINTS (never violate):
- Only suggest changes the page owner can make by editing content:
  copy and headlines, bio text, reordering existing services/highlights/testimonials,
  adding or improving social proof, and call-to-action text.
- NEVER suggest performance, technical, SEO-markup, hosting, layout, color, font or design changes.
- NEVER suggest adding new page features, integrations or tracking.
- Every suggestion must be grounded in the analytics and content provided.

SUGGESTION CRITERIA:
- Be specific and actionable; write the actual replacement copy where possible
- Prioritize by expected impact on conversion rate
- Make the suggestions diverse: cover different target sections
- Do not repeat suggestions the owner already has pending

RESPONSE FORMAT:
Return ONLY a JSON object with {MIN_CANDIDATES}-{MAX_CANDIDATES} suggestions:
{{
  "suggestions": [
    {{
      "suggestion_type": "content|conversion|engagement",
      "title": "Clear, actionable title",
      "description": "What to change, concretely",
      "reasoning": "Why this helps, citing their data",
      "priority": "high|medium|low",
      "target_section": "bio|services|highlights|testimonials|cta|header",
      "suggested_content": "The exact new copy, or the new order as a JSON list",
      "confidence_score": 0.8
    }}
  ]
}}"""

SELECTION_SYSTEM_PROMPT = """You are selecting the most impactful landing page suggestions.
Prefer suggestions that target different sections and address the weakest metric.
Return ONLY a JSON object: {"selected_indices": [i, j, k]} using the 1-based numbers shown."""


def estimate_tokens(text: str) -> int:
    """Rough token estimate: four characters per token."""
    return math.ceil(len(text) / 4)


def detect_issues(snapshot: PageSnapshot) -> List[str]:
    """Data-driven problems worth calling out to the model."""
    analytics = snapshot.analytics
    content = snapshot.content
    issues: List[str] = []

    if analytics.page_views < LOW_TRAFFIC_VIEWS:
        issues.append("Low traffic volume needs attention")
    if analytics.conversion_rate < LOW_CONVERSION_RATE:
        issues.append("Low conversion rate needs optimization")
    if analytics.cta_clicks == 0:
        issues.append("No CTA clicks detected - critical issue")
    if content.bio_word_count > LONG_BIO_WORDS:
        issues.append("Bio may be too long")
    if content.bio_word_count < SHORT_BIO_WORDS:
        issues.append("Bio may be too short")
    if content.services_count == 0:
        issues.append("No services listed")

    return issues


def build_user_prompt(
    snapshot: PageSnapshot,
    existing: Sequence[Suggestion],
    analysis_type: str,
) -> str:
    analytics = snapshot.analytics
    content = snapshot.content
    activity = snapshot.recent_activity

    existing_titles = [s.title for s in existing[:MAX_EXISTING_TITLES]]
    issues = detect_issues(snapshot)

    onboarding = (
        json.dumps(content.onboarding_data, indent=2, default=str)
        if content.onboarding_data
        else "No onboarding data available"
    )

    lines = [
        f"Analyze this landing page and provide {MIN_CANDIDATES}-{MAX_CANDIDATES} diverse, "
        "specific, content-only suggestions.",
        "",
        "LANDING PAGE CONTENT:",
        f"Name: {content.name or 'Unknown'}",
        f"Bio: {content.bio or '(empty)'}",
        f"Bio Length: {content.bio_word_count} words",
        f"Services: {content.services_count} listed",
        f"Highlights: {content.highlights_count} listed",
        f"Testimonials: {content.testimonials_count} listed",
        "",
        "ANALYTICS PERFORMANCE:",
        f"- Total Page Views: {analytics.page_views}",
        f"- Unique Visitors: {analytics.unique_visitors}",
        f"- Total CTA Clicks: {analytics.cta_clicks}",
        f"- Conversion Rate: {analytics.conversion_rate:.2f}%",
        f"- Average Session Duration: {analytics.avg_session_duration:.0f} seconds",
        f"- Recent Page Views (7 days): {snapshot.recent_page_views}",
        f"- Recent CTA Clicks (7 days): {snapshot.recent_cta_clicks}",
        "",
        "RECENT ACTIVITY:",
        f"- Content changes in last 7 days: {activity.content_changes_last_7_days}",
        f"- Last content change: {activity.last_content_change or 'None'}",
        "",
        f"ANALYSIS TYPE: {analysis_type}",
        "",
        "EXISTING SUGGESTIONS (don't duplicate):",
        ", ".join(existing_titles) if existing_titles else "None",
        "",
        "KEY ISSUES TO ADDRESS:",
    ]
    lines.extend(f"- {issue}" for issue in issues)
    if not issues:
        lines.append("- No critical issues detected; focus on incremental copy gains")
    lines.extend([
        "",
        "ONBOARDING DATA CONTEXT:",
        onboarding,
    ])
    return "\n".join(lines)


def build_selection_prompt(
    candidates: Sequence[SuggestionCandidate],
    snapshot: PageSnapshot,
    pick: int,
) -> str:
    analytics = snapshot.analytics
    lines = [
        f"Pick exactly {pick} of these {len(candidates)} suggestions.",
        "",
        "PAGE METRICS:",
        f"- Page Views: {analytics.page_views}",
        f"- CTA Clicks: {analytics.cta_clicks}",
        f"- Conversion Rate: {analytics.conversion_rate:.2f}%",
        f"- Average Session Duration: {analytics.avg_session_duration:.0f} seconds",
        "",
        "CANDIDATES:",
    ]
    for number, candidate in enumerate(candidates, start=1):
        lines.append(
            f"{number}. {candidate.title} "
            f"(priority: {candidate.priority.value}, section: {section_key(candidate.target_section)})"
        )
    lines.extend([
        "",
        f'Respond with {{"selected_indices": [...]}} containing {pick} numbers.',
    ])
    return "\n".join(lines)
