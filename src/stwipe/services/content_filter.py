"""Transcript cleaning: deterministic filler removal followed by an optional AI pass."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Dict, List, Optional, Pattern, Sequence, TypedDict

from langgraph.graph import END, START, StateGraph
from pydantic import Field
from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from rich.console import Console

from stwipe.config.settings import Settings, get_settings
from stwipe.models.base import StwipeBaseModel
from stwipe.services import ExternalServiceError, TextCleaner, TopicExtractor

DEFAULT_LANGUAGE = "hinglish"
MIN_RETENTION_RATIO = 0.3
DEFAULT_TOPIC = "General Topic"
MAX_FILTER_CHARS = 60_000

FILLER_WORDS: Dict[str, Sequence[str]] = {
    "hinglish": (
        "umm", "uhh", "acha", "haan", "toh", "matlab", "yaar", "guys", "ok guys", "alright guys",
        "so basically", "you know", "like", "actually", "literally", "obviously", "basically",
        "देखिए", "तो", "हाँ", "ठीक है", "अच्छा", "चलिए", "समझे", "बात यह है",
    ),
    "english": (
        "umm", "uhh", "like", "you know", "actually", "literally", "basically", "obviously",
        "ok guys", "alright", "so", "well", "anyway", "I mean", "kind of", "sort of",
    ),
    "hindi": (
        "देखिए", "तो", "हाँ", "ठीक है", "अच्छा", "चलिए", "समझे", "बात यह है", "मतलब",
        "यार", "अरे", "हम्म", "उम्म",
    ),
}

# Devanagari vowel signs are not matched by \w, so word boundaries are spelled out.
_WORD_CHARS = r"\w\u0900-\u097F"
_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCTUATION = re.compile(r"\s+([.,])")
_REPEATED_PERIODS = re.compile(r"\.(?:\s*\.)+")
_REPEATED_COMMAS = re.compile(r",(?:\s*,)+")
_LEADING_PUNCTUATION = re.compile(r"^[\s.,]+")

FILTER_SYSTEM_PROMPT = """You are an expert content filter for educational material. Clean transcribed \
educational content by:

1. Removing filler words, hesitations, and speech disfluencies
2. Filtering out side jokes, personal anecdotes, and off-topic conversations
3. Removing informal greetings and social chat that don't contribute to learning
4. Keeping only the core educational content and explanations
5. Maintaining the natural flow and coherence of the explanation
6. Preserving technical terms, examples, and important context
7. Keeping the original language style natural and educational

Do NOT change the meaning or add new information. Do NOT make the content too formal if it was \
naturally conversational. DO preserve educational questions and answers, examples and analogies.

Return only the filtered educational content."""

TOPIC_SYSTEM_PROMPT = """You identify educational topics in text content. List the main topics or \
concepts being taught, in the order they appear, each as a concise name of 2-5 words. Focus on \
concepts, theories, formulas and principles."""


def filler_words_for(language: Optional[str]) -> Sequence[str]:
    """Return the filler list for ``language``, falling back to Hinglish."""

    key = (language or DEFAULT_LANGUAGE).strip().lower()
    return FILLER_WORDS.get(key, FILLER_WORDS[DEFAULT_LANGUAGE])


@lru_cache(maxsize=None)
def _filler_pattern(language: str) -> Pattern[str]:
    fillers = sorted(filler_words_for(language), key=len, reverse=True)
    alternation = "|".join(re.escape(filler).replace(r"\ ", r"\s+") for filler in fillers)
    return re.compile(rf"(?<![{_WORD_CHARS}])(?:{alternation})(?![{_WORD_CHARS}])", re.IGNORECASE)


def remove_fillers(text: str, language: Optional[str] = DEFAULT_LANGUAGE) -> str:
    """Strip filler words for ``language`` and collapse leftover whitespace and punctuation.

    Matching is case-insensitive and whole-word; longer phrases win over their prefixes so that
    ``"so basically"`` is removed as one unit.
    """

    key = (language or DEFAULT_LANGUAGE).strip().lower()
    pattern = _filler_pattern(key if key in FILLER_WORDS else DEFAULT_LANGUAGE)
    # Removing one filler can bring the words of a phrase together; repeat until nothing changes.
    while True:
        filtered = _clean_once(pattern, text)
        if filtered == text:
            return filtered
        text = filtered


def _clean_once(pattern: Pattern[str], text: str) -> str:
    filtered = pattern.sub(" ", text)
    filtered = _WHITESPACE.sub(" ", filtered)
    filtered = _SPACE_BEFORE_PUNCTUATION.sub(r"\1", filtered)
    filtered = _REPEATED_PERIODS.sub(".", filtered)
    filtered = _REPEATED_COMMAS.sub(",", filtered)
    filtered = _LEADING_PUNCTUATION.sub("", filtered)
    return filtered.strip()


class FilterState(TypedDict, total=False):
    """Workflow state propagated through the filtering graph."""

    text: str
    language: str
    basic: str
    cleaned: Optional[str]
    result: str
    error: Optional[str]


class ContentFilter:
    """Two-stage transcript filter with a retention safety check.

    Stage one removes a fixed per-language list of filler words. Stage two, when a
    :class:`TextCleaner` is configured, asks a language model to strip remaining disfluencies
    and off-topic chatter. The model's output is discarded in favour of the stage-one text when
    it is shorter than ``min_retention_ratio`` of its input or when the call fails.
    """

    def __init__(
        self,
        *,
        cleaner: Optional[TextCleaner] = None,
        min_retention_ratio: float = MIN_RETENTION_RATIO,
        console: Optional[Console] = None,
    ) -> None:
        self._cleaner = cleaner
        self._min_retention_ratio = min_retention_ratio
        self._console = console or Console()
        self._workflow = self._build_workflow()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, *, console: Optional[Console] = None) -> "ContentFilter":
        """Build a filter whose AI stage is enabled when settings and credentials allow it."""

        settings = settings or get_settings()
        console = console or Console()
        cleaner: Optional[TextCleaner] = None
        if not settings.ai_filter_enabled:
            console.log("[yellow]AI filtering disabled by configuration.[/yellow]")
        elif settings.openai_api_key is None:
            console.log("[yellow]OPENAI_API_KEY not configured - AI filtering disabled.[/yellow]")
        else:
            cleaner = AgentTextCleaner(settings=settings)
        return cls(cleaner=cleaner, min_retention_ratio=settings.min_retention_ratio, console=console)

    @property
    def min_retention_ratio(self) -> float:
        """Return the minimum share of stage-one text the AI stage must keep."""

        return self._min_retention_ratio

    async def filter(self, text: str, language: str = DEFAULT_LANGUAGE) -> str:
        """Return cleaned educational text. Never raises."""

        state: FilterState = {"text": text, "language": language, "cleaned": None, "error": None}
        try:
            final_state = await self._workflow.ainvoke(state)
        except Exception as exc:  # pragma: no cover - graph failures degrade to the basic pass
            self._console.log(f"[yellow]Content filtering failed, using basic filter:[/yellow] {exc}")
            return remove_fillers(text, language)
        return final_state.get("result", "")

    def _build_workflow(self) -> object:
        """Construct the LangGraph workflow: strip fillers, clean with AI, accept or fall back."""

        graph = StateGraph(FilterState)
        graph.add_node("strip_fillers", self._strip_fillers_node)
        graph.add_node("ai_clean", self._ai_clean_node)
        graph.add_node("accept", self._accept_node)
        graph.add_node("fallback", self._fallback_node)
        graph.add_edge(START, "strip_fillers")
        graph.add_conditional_edges(
            "strip_fillers",
            self._route_post_strip,
            {"clean": "ai_clean", "skip": END},
        )
        graph.add_conditional_edges(
            "ai_clean",
            self._route_post_clean,
            {"accept": "accept", "fallback": "fallback"},
        )
        graph.add_edge("accept", END)
        graph.add_edge("fallback", END)
        return graph.compile()

    async def _strip_fillers_node(self, state: FilterState) -> FilterState:
        basic = remove_fillers(state["text"], state.get("language"))
        return {"basic": basic, "result": basic}

    def _route_post_strip(self, state: FilterState) -> str:
        if self._cleaner is None or not state.get("basic"):
            return "skip"
        return "clean"

    async def _ai_clean_node(self, state: FilterState) -> FilterState:
        assert self._cleaner is not None
        try:
            cleaned = await self._cleaner.clean(state["basic"], state.get("language") or DEFAULT_LANGUAGE)
        except Exception as exc:
            self._console.log(f"[yellow]AI content filtering failed:[/yellow] {exc}")
            return {"cleaned": None, "error": str(exc)}
        return {"cleaned": (cleaned or "").strip()}

    def _route_post_clean(self, state: FilterState) -> str:
        cleaned = state.get("cleaned")
        if not cleaned:
            return "fallback"
        if len(cleaned) < len(state["basic"]) * self._min_retention_ratio:
            return "fallback"
        return "accept"

    async def _accept_node(self, state: FilterState) -> FilterState:
        return {"result": state["cleaned"] or state["basic"]}

    async def _fallback_node(self, state: FilterState) -> FilterState:
        if state.get("error") is None:
            self._console.log(
                "[yellow]AI filtering removed too much content, falling back to basic filtering[/yellow] "
                f"(kept={len(state.get('cleaned') or '')}, input={len(state['basic'])})"
            )
        return {"result": state["basic"]}


def _create_chat_model(settings: Settings) -> OpenAIChatModel:
    if settings.openai_api_key is None:
        raise ExternalServiceError("No language model credentials configured. Set OPENAI_API_KEY.")
    provider = OpenAIProvider(api_key=settings.openai_api_key.get_secret_value())
    return OpenAIChatModel(settings.filter_model, provider=provider)


class AgentTextCleaner:
    """:class:`TextCleaner` backed by a Pydantic AI agent."""

    def __init__(self, *, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._agent: Agent[None, str] = Agent(
            model=_create_chat_model(self._settings),
            output_type=str,
            system_prompt=FILTER_SYSTEM_PROMPT,
            model_settings={"temperature": 0.1},
        )

    async def clean(self, text: str, language: str) -> str:
        prompt = (
            f"The content is spoken in {language}; keep that language style.\n"
            "Filter this educational content, keeping only the valuable learning material:\n\n"
            f"{text[:MAX_FILTER_CHARS]}"
        )
        result = await self._agent.run(prompt)
        return result.output


class TopicList(StwipeBaseModel):
    """Structured payload returned by topic extraction."""

    topics: List[str] = Field(default_factory=list)


class AgentTopicExtractor:
    """:class:`TopicExtractor` backed by a Pydantic AI agent; degrades to a generic label."""

    def __init__(self, *, settings: Optional[Settings] = None, console: Optional[Console] = None) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._agent: Agent[None, TopicList] = Agent(
            model=_create_chat_model(self._settings),
            output_type=TopicList,
            system_prompt=TOPIC_SYSTEM_PROMPT,
            model_settings={"temperature": 0.1},
        )

    async def identify_topics(self, text: str) -> List[str]:
        try:
            result = await self._agent.run(
                f"Identify the main educational topics in this content:\n\n{text[:MAX_FILTER_CHARS]}"
            )
        except Exception as exc:
            self._console.log(f"[yellow]Topic identification failed:[/yellow] {exc}")
            return [DEFAULT_TOPIC]
        topics = [topic.strip() for topic in result.output.topics if topic.strip()]
        return topics or [DEFAULT_TOPIC]


def topic_extractor_from_settings(
    settings: Optional[Settings] = None,
    *,
    console: Optional[Console] = None,
) -> Optional[TopicExtractor]:
    """Return a topic extractor when AI topic labels are enabled and credentials exist."""

    settings = settings or get_settings()
    if not settings.ai_topic_labels or settings.openai_api_key is None:
        return None
    return AgentTopicExtractor(settings=settings, console=console)


__all__ = [
    "AgentTextCleaner",
    "AgentTopicExtractor",
    "ContentFilter",
    "DEFAULT_TOPIC",
    "FILLER_WORDS",
    "MIN_RETENTION_RATIO",
    "filler_words_for",
    "remove_fillers",
    "topic_extractor_from_settings",
]
