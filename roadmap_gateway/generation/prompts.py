"""Prompts for roadmap generation."""

import json

from roadmap_gateway.schemas.roadmap import GenerationPreferences

ROADMAP_SYSTEM_PROMPT = """You are an expert curriculum designer. Generate a practical, step-by-step learning roadmap.
Return strictly valid JSON following this TypeScript type. Do not include any extra commentary.

interface MilestoneTask { id: string; title: string; description: string; duration: string; completed: boolean; }
interface MilestoneResource { type: 'COURSE' | 'ARTICLE'; title: string; description: string; url: string; }
interface Milestone { id: string; title: string; overview: string; skills: string[]; timeframe: string; resources: MilestoneResource[]; tasks: MilestoneTask[]; }

Rules:
- Produce exactly 6 milestones.
- Each milestone must have 3 tasks, with completed=false and duration like "1 hour".
- Each milestone must have at least 2 resources: one COURSE and one ARTICLE, with live URLs.
- Resource descriptions should be a short paragraph.
- Use only reputable sources (Coursera, freeCodeCamp, edX, Khan Academy, MDN, official docs, university pages).
- Keep titles concise and actionable.
- Overview should be 1-2 sentences.
- skills array should have 2 short items.
- timeframe in the form "Month N" or "Month N-M".
- Output JSON: { "milestones": Milestone[] }."""


def build_user_prompt(category: str, course: str, preferences: GenerationPreferences) -> str:
    """Render the per-request part of the prompt.

    Credentials carried in the preferences are never included.
    """
    return "\n".join(
        [
            f"Category: {category}",
            f"Course: {course}",
            f"Preferences: {json.dumps(preferences.public_view())}",
        ]
    )
