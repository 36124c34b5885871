# src/pipeline/steps/analyze.py - v1
"""Search landscape analysis for the item keyword.

One search call. Builds SourceAnalysis (organic results, reader questions,
related searches, competitor title insights) and authority link candidates
filtered by the AUTHORITY_DOMAINS allow-list and checked with HEAD requests.
"""

from __future__ import annotations

import logging
from collections import Counter

from contentflow.core.errors import StepFailure
from contentflow.core.models import (
    CompetitorInsights,
    LinkSuggestion,
    OrganicResult,
    SourceAnalysis,
    StepName,
)
from contentflow.pipeline.plugin_kit.base_step import BaseStep, StepContext
from contentflow.pipeline.plugin_kit.models import StepOutput
from contentflow.search.link_checker import LinkChecker
from contentflow.search.models import SearchResult

logger = logging.getLogger(__name__)

_MAX_LINK_CANDIDATES = 5
_STOPWORDS = {
    "pour", "dans", "avec", "sans", "votre", "vous", "comment", "quoi", "quel",
    "quelle", "tout", "tous", "plus", "guide", "what", "with", "your", "from",
    "that", "this", "best",
}


def build_analysis(result: SearchResult) -> SourceAnalysis:
    """Turn raw search results into the stored SourceAnalysis."""
    titles = [hit.title for hit in result.organic if hit.title]
    words = Counter(
        word
        for title in titles
        for word in {w.strip(".,:;!?()«»\"'").lower() for w in title.split()}
        if len(word) > 3 and word not in _STOPWORDS
    )
    insights = CompetitorInsights(
        avg_title_length=round(sum(len(t) for t in titles) / len(titles)) if titles else 0,
        common_title_words=[w for w, n in words.most_common(10) if n >= 2],
    )
    return SourceAnalysis(
        keyword=result.query,
        organic=[
            OrganicResult(
                title=hit.title, link=hit.link, snippet=hit.snippet, position=hit.position
            )
            for hit in result.organic
        ],
        questions=[q.question for q in result.people_also_ask if q.question],
        related_searches=list(result.related_searches),
        competitors=insights,
    )


def _is_authority(url: str, domains: list[str]) -> bool:
    return any(domain in url for domain in domains)


async def find_authority_links(
    result: SearchResult,
    domains: list[str],
    link_checker: LinkChecker | None,
) -> list[LinkSuggestion]:
    """Authority-domain hits from the results, reachable ones first."""
    candidates = [
        hit for hit in result.organic if hit.link and _is_authority(hit.link, domains)
    ][:_MAX_LINK_CANDIDATES]

    links: list[LinkSuggestion] = []
    for hit in candidates:
        validated = await link_checker.is_reachable(hit.link) if link_checker else False
        links.append(
            LinkSuggestion(
                url=hit.link,
                anchor_text=hit.title,
                domain=hit.domain,
                validated=validated,
            )
        )
    links.sort(key=lambda link: not link.validated)
    return links


class AnalyzeStep(BaseStep):
    """Fetch and summarize the search landscape for the keyword."""

    @property
    def name(self) -> StepName:
        return StepName.ANALYZE

    @property
    def description(self) -> str:
        return "Search results analysis and authority link discovery"

    async def execute(self, ctx: StepContext) -> StepOutput:
        search = ctx.services.search
        if search is None:
            raise StepFailure("No search service configured")

        result = await search.search(ctx.item.keyword)
        analysis = build_analysis(result)
        checker = ctx.services.link_checker if ctx.settings.validate_links else None
        links = await find_authority_links(
            result, ctx.settings.authority_domains_list, checker
        )
        logger.info(
            "Analyzed '%s': %d results, %d questions, %d authority links",
            ctx.item.keyword, len(analysis.organic), len(analysis.questions), len(links),
        )
        return StepOutput(
            updates={"analysis": analysis, "link_suggestions": links},
            summary={
                "organic_results": len(analysis.organic),
                "questions": len(analysis.questions),
                "authority_links": len(links),
            },
        )
