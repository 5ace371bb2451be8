"""
Handler Matcher — deterministic request → handler scoring.

Responsibility:
- Score each declared handler of an actor against free text
- Return the best handler with a confidence when it clears the threshold
- Pure heuristics: action name, description overlap, parameter mentions, synonyms
"""

import logging

from shared.models import HandlerDescriptor, HandlerMatch

logger = logging.getLogger(__name__)

ACTION_NAME_WEIGHT = 0.6
DESCRIPTION_WEIGHT = 0.3
PARAMETER_MENTION_WEIGHT = 0.1
SYNONYM_BONUS = 0.4
MATCH_THRESHOLD = 0.3

ACTION_SYNONYMS: dict[str, tuple[str, ...]] = {
    "add": ("plus", "sum", "total", "combine", "calculate", "+", "addition"),
    "balance": ("check", "get", "show", "view"),
    "burn": ("destroy", "remove", "delete"),
    "divide": ("division", "/", "divided", "÷"),
    "info": ("details", "information", "about"),
    "mint": ("create", "generate", "issue"),
    "multiply": ("times", "multiplication", "*", "×", "multiplied"),
    "subtract": ("minus", "subtraction", "-", "take", "difference"),
    "transfer": ("send", "give", "pay", "move"),
}


class HandlerMatcher:
    """Pick the actor handler a free-text request is most likely aimed at."""

    def __init__(self, threshold: float = MATCH_THRESHOLD, synonyms: dict[str, tuple[str, ...]] | None = None):
        self.threshold = threshold
        self.synonyms = synonyms if synonyms is not None else ACTION_SYNONYMS

    def match(self, request: str, handlers: list[HandlerDescriptor]) -> HandlerMatch | None:
        """Return the highest-scoring handler above the threshold, first one wins ties."""
        request_lower = request.lower()
        request_words = set(request_lower.split())

        best: HandlerMatch | None = None
        highest = 0.0
        for handler in handlers:
            score = self.score(request_lower, request_words, handler)
            if score > highest and score > self.threshold:
                best = HandlerMatch(handler=handler, confidence=min(score, 1.0))
                highest = score

        if best is not None:
            logger.debug("Matched handler '%s' (score=%.2f)", best.handler.action, highest)
        return best

    def score(self, request_lower: str, request_words: set[str], handler: HandlerDescriptor) -> float:
        score = 0.0
        action = handler.action.lower()

        if action and action in request_lower:
            score += ACTION_NAME_WEIGHT

        if handler.description:
            desc_words = handler.description.lower().split()
            if desc_words:
                matching = [word for word in desc_words if word in request_words]
                score += (len(matching) / len(desc_words)) * DESCRIPTION_WEIGHT

        for param in handler.parameters:
            if param.name.lower() in request_lower:
                score += PARAMETER_MENTION_WEIGHT

        score += self.synonym_bonus(request_lower, action)
        return score

    def synonym_bonus(self, request_lower: str, action: str) -> float:
        for synonym in self.synonyms.get(action, ()):
            if synonym in request_lower:
                return SYNONYM_BONUS
        return 0.0
