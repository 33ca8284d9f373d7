"""Prompt builders and system instructions for each generation step."""

from __future__ import annotations

from typing import Iterable, List

from draftsmith.models import CompetitorSnapshot, ContentFormat

STRATEGIST_SYSTEM = "You are an expert SEO content strategist. Always respond with valid JSON only."
OUTLINER_SYSTEM = "You are an expert SEO content writer. Always respond with valid JSON only."
INTRODUCTION_SYSTEM = "You are an expert content writer. Write engaging, SEO-optimized content."
SECTION_SYSTEM = (
    "You are an expert content writer. Write comprehensive, SEO-optimized long-form content."
)
CONCLUSION_SYSTEM = "You are an expert content writer. Write engaging conclusions with strong CTAs."

_FORMATS = [f.value for f in ContentFormat]
FORMAT_CHOICES = ", ".join(_FORMATS[:-1]) + f", or {_FORMATS[-1]}"


def _format_competitor(index: int, competitor: CompetitorSnapshot) -> str:
    if competitor.headings:
        numbered = "\n".join(f"  {i}. {h}" for i, h in enumerate(competitor.headings, start=1))
        headings_text = f"\nHeadings:\n{numbered}"
    else:
        headings_text = "\nHeadings: (Not available)"
    return (
        f"Competitor {index}:\n"
        f"Title: {competitor.title}\n"
        f"Snippet: {competitor.snippet}\n"
        f"Link: {competitor.url}{headings_text}"
    )


def build_gap_analysis_prompt(
    keyword: str, competitors: List[CompetitorSnapshot], paa_questions: Iterable[str]
) -> str:
    competitor_block = "\n\n".join(
        _format_competitor(i, c) for i, c in enumerate(competitors, start=1)
    )
    paa_block = "\n".join(paa_questions)
    return "\n".join(
        [
            f'You are an SEO content strategist. Analyze the SERP for the keyword "{keyword}".',
            "",
            "Competitor Analysis:",
            competitor_block,
            "",
            "People Also Ask Questions:",
            paa_block,
            "",
            "Based on this analysis:",
            f"1. Identify the dominant content format ({FORMAT_CHOICES})",
            "2. Analyze the headings structure of each competitor to understand their content organization",
            "3. Determine what specific sub-topic or expert perspective is MISSING that would provide "
            '"Information Gain" for readers',
            "4. Recommend a unique angle that competitors haven't covered, considering both their "
            "titles/snippets and heading structures",
            "",
            "Return target_format, information_gain_angle, competitor_headings (flattened list of the "
            "competitors' headings) and recommended_approach (brief explanation).",
        ]
    )


def build_outline_prompt(
    keyword: str, target_format: str, angle: str, paa_questions: Iterable[str]
) -> str:
    paa_block = "\n".join(paa_questions)
    return "\n".join(
        [
            f'Create a comprehensive SEO-optimized article outline for the keyword "{keyword}".',
            "",
            f"Target Format: {target_format}",
            f"Information Gain Angle: {angle}",
            "People Also Ask Questions:",
            paa_block,
            "",
            "Generate a structured outline with:",
            "- A keyword-optimized title (include the primary keyword naturally)",
            "- Multiple sections (H2 headings) that:",
            "  * Address the information gain angle",
            "  * Answer the PAA questions",
            "  * Include supporting keywords naturally",
            "  * Follow the target format structure",
            "",
            "Each section has a heading, an intent (what the section aims to achieve) and "
            "keywords_to_include.",
            "",
            "Ensure the outline has at least 6-8 sections for a comprehensive long-form article.",
        ]
    )


def build_introduction_prompt(keyword: str, title: str, angle: str) -> str:
    return "\n".join(
        [
            f'Write a compelling introduction for an article with the title: "{title}"',
            "",
            f"Primary Keyword: {keyword}",
            f"Information Gain Angle: {angle}",
            "",
            "Requirements:",
            "- Include the primary keyword in the first paragraph naturally",
            "- Hook the reader with a compelling opening",
            "- Explain what unique value this article provides",
            "- Set expectations for what they'll learn",
            "- Keep it engaging and conversational",
            "- Length: 150-200 words",
            "",
            "Write in markdown format.",
        ]
    )


def build_section_prompt(
    heading: str,
    intent: str,
    keywords: Iterable[str],
    previous_excerpt: str,
    angle: str,
    article_title: str,
) -> str:
    context = previous_excerpt or "This is the first section after introduction"
    return "\n".join(
        [
            "Write a comprehensive section for an article.",
            "",
            f"Article Title: {article_title}",
            f"Section Title: {heading}",
            f"Section Intent: {intent}",
            f"Keywords to Include: {', '.join(keywords)}",
            f"Information Gain Angle: {angle}",
            f"Previous Section Context: {context}",
            "",
            "Requirements:",
            "- Write in markdown format",
            "- Use the section title as an H2 heading",
            "- Include the specified keywords naturally",
            "- Provide deep, valuable information",
            "- Address the section intent thoroughly",
            "- Maintain consistency with the information gain angle",
            "- Length: 300-500 words",
            "- Use H3 subheadings where appropriate",
            "- Include examples, tips, or actionable insights",
            "",
            "Write the full section content in markdown.",
        ]
    )


def build_conclusion_prompt(title: str, keyword: str, summary: str) -> str:
    return "\n".join(
        [
            "Write a compelling conclusion for an article.",
            "",
            f"Article Title: {title}",
            f"Primary Keyword: {keyword}",
            f"Article Summary: {summary}",
            "",
            "Requirements:",
            "- Summarize key takeaways",
            "- Reinforce the main value proposition",
            "- Include a clear call-to-action (CTA)",
            "- Include the primary keyword naturally",
            "- Keep it engaging and actionable",
            "- Length: 150-200 words",
            "- Write in markdown format",
            "",
            "Write the conclusion content.",
        ]
    )
