"""
StarOne - Insight Extraction Pipeline

Turns a corpus of negative reviews into complaints, feature requests,
a sentiment summary and app ideas.
"""

from typing import Any, Dict, List
import logging

from starone.api.schemas import AppIdea, Idea, InsightResult
from starone.pipelines.base import BasePipeline

logger = logging.getLogger(__name__)


INSIGHT_PROMPT_TEMPLATE = """Analyze these negative reviews from the Google Play Store and return a JSON object with the following structure:
{{
  "top_complaints": ["complaint 1", "complaint 2", "complaint 3", ...],
  "feature_requests": ["feature 1", "feature 2", "feature 3", ...],
  "sentiment_summary": "one sentence overview of the overall sentiment",
  "app_ideas": [
    {{
      "name": "App Name",
      "pain_point": "Specific user pain point this solves",
      "differentiation": "How it differs from the analyzed app",
      "value_proposition": "Clear value for users"
    }},
    ...
  ]
}}

Focus on:
- Missing features users explicitly request
- Functional gaps (not just bug reports)
- Patterns across multiple reviews
- Actionable insights that competitors could capitalize on

For app_ideas, suggest 3-5 specific app concepts that could solve the identified problems. Each idea should:
- Target a specific pain point from the complaints/requests
- Be feasible for an indie hacker to build
- Have clear differentiation from the analyzed app
- Include a brief value proposition (1-2 sentences)

Keep each item concise (1-2 sentences max). Limit to top 5-7 items per category.

Reviews to analyze:
{reviews}"""


class InsightPipeline(BasePipeline):
    """
    Insight extraction pipeline.

    Output:
    InsightResult(
        top_complaints=["Crashes on launch after update", ...],
        feature_requests=["Offline mode", ...],
        sentiment_summary="Users are frustrated by ...",
        app_ideas=[AppIdea(name=..., pain_point=..., ...), "plain idea", ...]
    )
    """

    @property
    def name(self) -> str:
        return "insights"

    @property
    def system_prompt(self) -> str:
        return (
            "You are a product researcher analyzing app reviews to identify feature gaps "
            "and opportunities for indie hackers and competitors. "
            "Only output valid JSON, no explanations."
        )

    @property
    def max_items(self) -> int:
        return self.settings.max_insight_items

    def build_prompt(self, corpus_text: str) -> str:
        """Fill the fixed instruction template with the review corpus."""
        return INSIGHT_PROMPT_TEMPLATE.format(reviews=corpus_text)

    def _string_list(self, value: Any) -> List[str]:
        """Coerce a model list into non-empty strings, capped."""
        if not isinstance(value, list):
            return []

        items = []
        for entry in value:
            if entry is None:
                continue
            text = str(entry).strip()
            if text:
                items.append(text)

        return items[:self.max_items]

    def _ideas(self, value: Any) -> List[Idea]:
        """Normalize app ideas to plain strings or AppIdea records."""
        if not isinstance(value, list):
            return []

        ideas: List[Idea] = []
        for entry in value:
            if isinstance(entry, dict):
                fields = {
                    key: ("" if item is None else str(item)) if key in AppIdea.model_fields else item
                    for key, item in entry.items()
                }
                ideas.append(AppIdea(**fields))
            elif isinstance(entry, str):
                if entry.strip():
                    ideas.append(entry.strip())
            elif entry is not None:
                ideas.append(str(entry))

        return ideas[:self.max_items]

    def parse_result(self, data: Dict[str, Any]) -> InsightResult:
        """Build an InsightResult, defaulting every missing field."""
        summary = data.get("sentiment_summary")
        if not isinstance(summary, str) or not summary.strip():
            summary = "Analysis completed"

        return InsightResult(
            top_complaints=self._string_list(data.get("top_complaints")),
            feature_requests=self._string_list(data.get("feature_requests")),
            sentiment_summary=summary.strip(),
            app_ideas=self._ideas(data.get("app_ideas"))
        )

    async def analyze(self, corpus_text: str) -> InsightResult:
        """
        Extract insights from a review corpus.

        Args:
            corpus_text: Negative review bodies joined by the corpus delimiter

        Returns:
            InsightResult

        Raises:
            GenerationFailure: the model could not be reached
            ParseFailure: no JSON object could be recovered
        """
        data = await self._generate_json(self.build_prompt(corpus_text))
        result = self.parse_result(data)

        logger.info(
            f"Extracted {len(result.top_complaints)} complaints, "
            f"{len(result.feature_requests)} feature requests, "
            f"{len(result.app_ideas)} app ideas"
        )
        return result
