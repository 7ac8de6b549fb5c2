"""Merge, de-duplicate and rank candidate lists."""

import locale
from typing import Callable, Dict, Iterable, List, Optional

from ..models.data_models import Record, SearchConfig
from .scoring import FieldText, default_field_text, primary_text, score_record

Identity = Callable[[Record], Optional[str]]


def record_id(record: Record) -> Optional[str]:
    return record.id


def _sort_name(name: str) -> str:
    try:
        return locale.strxfrm(name)
    except (ValueError, OSError):
        return name


def merge_rank(
    primary: Iterable[Record],
    secondary: Iterable[Record],
    query: str,
    config: SearchConfig,
    limit: int = 50,
    identity: Identity = record_id,
    field_text: FieldText = default_field_text,
) -> List[Record]:
    """Combine two candidate lists into one ranked list.

    Records from ``primary`` win identity conflicts. Inputs are expected to
    be pre-filtered; zero-score records that made it in are kept.
    """
    by_id: Dict[str, Record] = {}
    for record in primary:
        key = identity(record)
        if not key:
            continue
        by_id[key] = record
    for record in secondary:
        key = identity(record)
        if not key or key in by_id:
            continue
        by_id[key] = record

    scored = [
        (
            score_record(record, query, config, field_text),
            _sort_name(primary_text(record, config, field_text)),
            record,
        )
        for record in by_id.values()
    ]
    scored.sort(key=lambda entry: (-entry[0], entry[1]))
    return [record for _, _, record in scored[:max(limit, 0)]]
