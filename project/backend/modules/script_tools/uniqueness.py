"""
Script uniqueness guard.

Fingerprints scripts and keeps new ones from repeating earlier ones.
"""

import hashlib
import random
import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

import numpy as np

from shared.logging import get_logger
from shared.models.script import ScriptData, utc_now
from shared.models.workflow import (
    ScriptFingerprint,
    UniquenessCheck,
    UniquenessHistory,
    UniquenessReport,
)
from modules.script_tools.dedup import normalize, split_sentences

logger = get_logger("script_tools")

RewriteFn = Callable[[ScriptData], Awaitable[ScriptData]]

_WORD = re.compile(r"\b(\w+)\b")

# Word -> interchangeable alternatives
SYNONYMS = {
    "also": ["additionally", "plus"],
    "but": ["yet", "though"],
    "very": ["really", "truly"],
    "shows": ["reveals", "displays"],
    "great": ["excellent", "impressive"],
    "big": ["large", "huge"],
    "quickly": ["rapidly", "swiftly"],
    "important": ["key", "crucial"],
    "look": ["glance", "peek"],
    "start": ["begin", "kick off"],
}

RECENT_WINDOW = timedelta(days=7)


def cosine_similarity(a: Counter, b: Counter) -> float:
    """Cosine similarity of two term-count vectors."""
    vocabulary = sorted(set(a) | set(b))
    if not vocabulary:
        return 0.0
    va = np.array([a.get(term, 0) for term in vocabulary], dtype=float)
    vb = np.array([b.get(term, 0) for term in vocabulary], dtype=float)
    denominator = np.linalg.norm(va) * np.linalg.norm(vb)
    if denominator == 0:
        return 0.0
    return float(np.dot(va, vb) / denominator)


def _swap_words(text: str, rng: random.Random, probability: float) -> str:
    def replace(match: re.Match) -> str:
        word = match.group(1)
        alternatives = SYNONYMS.get(word.lower())
        if not alternatives or rng.random() >= probability:
            return word
        choice = rng.choice(alternatives)
        return choice.capitalize() if word[0].isupper() else choice

    return _WORD.sub(replace, text)


def _with_segments(script: ScriptData, segments) -> ScriptData:
    return script.model_copy(update={
        "segments": segments,
        "content": "\n\n".join(s.content for s in segments),
        "updated_at": utc_now(),
    })


def vary_script(script: ScriptData, rng: Optional[random.Random] = None) -> ScriptData:
    """
    Rewrite a script: swap every known synonym and rotate multi-sentence segments.

    Args:
        script: Script to rewrite (left untouched)
        rng: Random source

    Returns:
        New ScriptData
    """
    rng = rng or random.Random()
    segments = []
    for segment in script.segments:
        sentences = split_sentences(_swap_words(segment.content, rng, probability=1.0))
        if len(sentences) > 2:
            # Keep the opening sentence, rotate the rest
            body = sentences[1:]
            sentences = [sentences[0], *body[1:], body[0]]
        segments.append(segment.model_copy(update={"content": " ".join(sentences)}))
    return _with_segments(script, segments)


class UniquenessGuard:
    """Keeps a history of script fingerprints and checks new scripts against it."""

    def __init__(
        self,
        similarity_threshold: float = 0.3,
        auto_rewrite: bool = True,
        max_rewrite_attempts: int = 3
    ):
        """
        Initialize guard.

        Args:
            similarity_threshold: Maximum cosine similarity for a script to count as unique
            auto_rewrite: Rewrite scripts that are too similar
            max_rewrite_attempts: Rewrite budget per script
        """
        self.similarity_threshold = similarity_threshold
        self.auto_rewrite = auto_rewrite
        self.max_rewrite_attempts = max_rewrite_attempts
        self.history: List[ScriptFingerprint] = []

    def fingerprint(self, script: ScriptData) -> ScriptFingerprint:
        text = script.content or " ".join(s.content for s in script.segments)
        normalized = normalize(text)
        return ScriptFingerprint(
            hash=hashlib.sha256(normalized.encode("utf-8")).hexdigest(),
            terms=dict(Counter(normalized.split())),
        )

    def _max_similarity(self, fingerprint: ScriptFingerprint, exclude_self: bool = False) -> float:
        best = 0.0
        terms = Counter(fingerprint.terms)
        for previous in self.history:
            if previous.hash == fingerprint.hash:
                if exclude_self:
                    continue
                return 1.0
            best = max(best, cosine_similarity(terms, Counter(previous.terms)))
        return best

    def check(
        self,
        script: ScriptData,
        exclude_self: bool = False,
        similarity_threshold: Optional[float] = None
    ) -> UniquenessCheck:
        """
        Compare a script with the history.

        Args:
            script: Script to check
            exclude_self: Ignore history entries with the same fingerprint
            similarity_threshold: Overrides the guard threshold for this call

        Returns:
            UniquenessCheck
        """
        similarity = self._max_similarity(self.fingerprint(script), exclude_self)
        if similarity_threshold is None:
            similarity_threshold = self.similarity_threshold
        is_unique = similarity <= similarity_threshold

        suggestions = []
        if not is_unique:
            suggestions.append("Rephrase the opening so it differs from earlier scripts")
            suggestions.append("Reference details specific to this video")

        return UniquenessCheck(is_unique=is_unique, similarity=round(similarity, 4), suggestions=suggestions)

    def register(self, script: ScriptData) -> ScriptFingerprint:
        fingerprint = self.fingerprint(script)
        self.history.append(fingerprint)
        return fingerprint

    def add_randomness(self, script: ScriptData, seed: Optional[int] = None) -> ScriptData:
        """Swap roughly half of the known synonyms. Deterministic for a given seed."""
        rng = random.Random(seed)
        segments = [
            segment.model_copy(update={"content": _swap_words(segment.content, rng, probability=0.5)})
            for segment in script.segments
        ]
        return _with_segments(script, segments)

    async def ensure_uniqueness(
        self,
        script: ScriptData,
        rewrite_fn: Optional[RewriteFn] = None,
        similarity_threshold: Optional[float] = None,
        auto_rewrite: Optional[bool] = None,
        max_rewrite_attempts: Optional[int] = None
    ) -> Tuple[ScriptData, bool, int]:
        """
        Rewrite a script until it is unique or the rewrite budget is spent.

        The final script is registered in the history either way.

        Args:
            script: Script to check
            rewrite_fn: Async rewrite function (vary_script when None)
            similarity_threshold, auto_rewrite, max_rewrite_attempts: Per-call
                overrides of the guard settings

        Returns:
            (script, is_unique, rewrite attempts)
        """
        if auto_rewrite is None:
            auto_rewrite = self.auto_rewrite
        if max_rewrite_attempts is None:
            max_rewrite_attempts = self.max_rewrite_attempts

        attempts = 0
        current = script
        check = self.check(current, similarity_threshold=similarity_threshold)

        while not check.is_unique and auto_rewrite and attempts < max_rewrite_attempts:
            attempts += 1
            logger.info(
                f"Script too similar to history ({check.similarity:.2f}), rewrite attempt {attempts}",
                extra={"script_id": script.id}
            )
            if rewrite_fn is not None:
                current = await rewrite_fn(current)
            else:
                current = vary_script(current, random.Random(attempts))
            check = self.check(current, similarity_threshold=similarity_threshold)

        self.register(current)
        return current, check.is_unique, attempts

    def report(self, script: ScriptData, similarity_threshold: Optional[float] = None) -> UniquenessReport:
        now = datetime.now(timezone.utc)
        recent = sum(
            1 for fp in self.history
            if now - datetime.fromisoformat(fp.created_at) <= RECENT_WINDOW
        )
        return UniquenessReport(
            fingerprint=self.fingerprint(script),
            check=self.check(script, exclude_self=True, similarity_threshold=similarity_threshold),
            history=UniquenessHistory(total_scripts=len(self.history), recent_scripts=recent),
        )
