"""Compile persisted sections into the final markdown document."""

from __future__ import annotations

from typing import Iterable

from draftsmith.models import Section, SectionType


def render_section(section: Section) -> str:
    """The introduction carries the article's H1; other sections bring their own headings."""
    if section.type == SectionType.INTRODUCTION:
        return f"# {section.heading}\n\n{section.content}"
    return section.content


def assemble_document(sections: Iterable[Section]) -> str:
    ordered = sorted(sections, key=lambda s: s.order)
    return "\n\n".join(render_section(s) for s in ordered)
