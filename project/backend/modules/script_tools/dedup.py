"""
Script de-duplication.

Originality scoring and automatic repair of repeated or stock phrasing.
"""

import re
from typing import Dict, List, Set, Tuple

from shared.logging import get_logger
from shared.models.script import ScriptData, utc_now
from shared.models.workflow import DuplicateFinding, OriginalityReport

logger = get_logger("script_tools")

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_WORD = re.compile(r"[\w']+")

# Stock phrases and their replacements
STOCK_PHRASES: Dict[str, List[str]] = {
    "without further ado": ["let's get started", "right away"],
    "in this video": ["here", "in this clip"],
    "don't forget to like and subscribe": ["follow along for more", "stay tuned for the next one"],
    "at the end of the day": ["ultimately", "in the end"],
    "needless to say": ["clearly", "of course"],
    "it goes without saying": ["naturally", "plainly"],
}

EXACT_PENALTY = 15
SEMANTIC_PENALTY = 8
TEMPLATE_PENALTY = 5


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text.strip()) if s.strip()]


def normalize(text: str) -> str:
    return " ".join(_WORD.findall(text.lower()))


def tokens(text: str) -> Set[str]:
    return set(_WORD.findall(text.lower()))


def jaccard(a: Set[str], b: Set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


class ScriptDeduplicator:
    """Detects exact, near-duplicate and stock sentences in a script."""

    def __init__(self, threshold: float = 0.7, auto_fix: bool = True, auto_variant: bool = True):
        """
        Initialize deduplicator.

        Args:
            threshold: Token Jaccard similarity at which two sentences count as duplicates
            auto_fix: Whether callers should repair low-scoring scripts
            auto_variant: Replace stock phrases when fixing
        """
        self.threshold = threshold
        self.auto_fix_enabled = auto_fix
        self.auto_variant = auto_variant

    def _sentences(self, script: ScriptData) -> List[Tuple[str, str]]:
        return [
            (segment.id, sentence)
            for segment in script.segments
            for sentence in split_sentences(segment.content)
        ]

    def originality_report(self, script: ScriptData) -> OriginalityReport:
        """
        Score a script's originality.

        Args:
            script: Script to inspect

        Returns:
            OriginalityReport with score 0-100, findings and suggestions
        """
        sentences = self._sentences(script)
        findings: List[DuplicateFinding] = []
        seen: Dict[str, str] = {}

        for index, (segment_id, sentence) in enumerate(sentences):
            key = normalize(sentence)
            if not key:
                continue

            if key in seen:
                findings.append(DuplicateFinding(
                    kind="exact",
                    text=sentence,
                    segment_ids=[seen[key], segment_id],
                ))
                continue
            seen[key] = segment_id

            sentence_tokens = tokens(sentence)
            for other_segment_id, other in sentences[:index]:
                if normalize(other) == key:
                    continue
                similarity = jaccard(sentence_tokens, tokens(other))
                if similarity >= self.threshold:
                    findings.append(DuplicateFinding(
                        kind="semantic",
                        text=sentence,
                        segment_ids=[other_segment_id, segment_id],
                        similarity=round(similarity, 3),
                    ))
                    break

        lowered = script.content.lower() or " ".join(s for _, s in sentences).lower()
        for phrase in STOCK_PHRASES:
            if phrase in lowered:
                findings.append(DuplicateFinding(kind="template", text=phrase))

        penalties = {"exact": EXACT_PENALTY, "semantic": SEMANTIC_PENALTY, "template": TEMPLATE_PENALTY}
        score = max(0, 100 - sum(penalties[f.kind] for f in findings))

        suggestions = []
        if any(f.kind == "exact" for f in findings):
            suggestions.append("Remove sentences that are repeated word for word")
        if any(f.kind == "semantic" for f in findings):
            suggestions.append("Rephrase sentences that say the same thing twice")
        if any(f.kind == "template" for f in findings):
            suggestions.append("Replace stock phrases with wording specific to this video")

        return OriginalityReport(score=score, duplicates=findings, suggestions=suggestions)

    def auto_fix(self, script: ScriptData) -> ScriptData:
        """
        Remove repeated sentences and vary stock phrases.

        Args:
            script: Script to repair (left untouched)

        Returns:
            New ScriptData
        """
        kept_keys: Set[str] = set()
        kept_tokens: List[Set[str]] = []
        removed = 0
        segments = []

        for segment in script.segments:
            kept = []
            for sentence in split_sentences(segment.content):
                key = normalize(sentence)
                sentence_tokens = tokens(sentence)
                if key in kept_keys or any(jaccard(sentence_tokens, t) >= self.threshold for t in kept_tokens):
                    removed += 1
                    continue
                kept_keys.add(key)
                kept_tokens.append(sentence_tokens)
                kept.append(self._vary(sentence) if self.auto_variant else sentence)
            segments.append(segment.model_copy(update={"content": " ".join(kept)}))

        logger.info(f"Auto-fix removed {removed} duplicate sentences", extra={"script_id": script.id})

        return script.model_copy(update={
            "segments": segments,
            "content": "\n\n".join(s.content for s in segments),
            "updated_at": utc_now(),
        })

    def _vary(self, sentence: str) -> str:
        for phrase, variants in STOCK_PHRASES.items():
            pattern = re.compile(re.escape(phrase), re.IGNORECASE)
            if pattern.search(sentence):
                sentence = pattern.sub(variants[0], sentence)
        if sentence:
            sentence = sentence[0].upper() + sentence[1:]
        return sentence
