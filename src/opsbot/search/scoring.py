"""
Relevance scoring for type-ahead search

Scores are additive: a record whose primary name equals the query also
starts with it, has a token starting with it and contains it, so it
collects every one of those bonuses. A score of 0 means "not a match".
"""

from typing import Callable, List

from ..models.data_models import Record, SearchConfig
from .text import field_to_text, normalize, tokenize

FieldText = Callable[[Record, str], str]

EXACT_BONUS = 100
PREFIX_BONUS = 90
TOKEN_PREFIX_BONUS = 80
SUBSTRING_BONUS = 70
SECONDARY_PREFIX_BONUS = 60
SECONDARY_SUBSTRING_BONUS = 50
TOKEN_COVERAGE_BONUS = 10
LENGTH_BONUS_CAP = 20
LENGTH_BONUS_DIVISOR = 5


def default_field_text(record: Record, field_name: str) -> str:
    return field_to_text(record.fields.get(field_name))


def searchable_texts(
    record: Record,
    config: SearchConfig,
    field_text: FieldText = default_field_text,
) -> List[str]:
    """Normalized, non-empty texts of every configured search field"""
    texts = []
    for field_name in config.search_fields:
        text = normalize(field_text(record, field_name))
        if text:
            texts.append(text)
    return texts


def primary_text(
    record: Record,
    config: SearchConfig,
    field_text: FieldText = default_field_text,
) -> str:
    """Normalized display text used for scoring and tie-break ordering"""
    if not config.display:
        return ""
    return normalize(field_text(record, config.display))


def score_record(
    record: Record,
    query: str,
    config: SearchConfig,
    field_text: FieldText = default_field_text,
) -> float:
    q = normalize(query)
    if not q:
        return 0

    texts = searchable_texts(record, config, field_text)
    if not texts:
        return 0

    primary = primary_text(record, config, field_text) or texts[0]
    score = 0.0

    if primary == q:
        score += EXACT_BONUS
    if primary.startswith(q):
        score += PREFIX_BONUS
    if any(token.startswith(q) for token in tokenize(primary)):
        score += TOKEN_PREFIX_BONUS
    if q in primary:
        score += SUBSTRING_BONUS

    secondary_bonus = 0
    for text in texts:
        if text == primary:
            continue
        if text.startswith(q):
            secondary_bonus = max(secondary_bonus, SECONDARY_PREFIX_BONUS)
        elif q in text:
            secondary_bonus = max(secondary_bonus, SECONDARY_SUBSTRING_BONUS)
    score += secondary_bonus

    query_tokens = tokenize(q)
    if len(query_tokens) > 1:
        covered = sum(1 for token in query_tokens if any(token in text for text in texts))
        score += covered * TOKEN_COVERAGE_BONUS

    # The tie-break only orders matches; it never turns a non-match into one.
    if score > 0:
        score += max(0.0, LENGTH_BONUS_CAP - len(primary) / LENGTH_BONUS_DIVISOR)

    return score
