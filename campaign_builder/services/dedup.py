"""
Duplicate detection for keyword and ad merges.

Keywords are the same when their text matches exactly (case-sensitive).
Ads are the same when their headline texts match as a set, regardless of
order or descriptions.
"""
from typing import Iterable, List, Set

from campaign_builder.services.row_folder import KeywordDraft

AD_KEY_SEPARATOR = "|"


def ad_dedup_key(headline_texts: Iterable[str]) -> str:
    """Sorted headline texts joined with a fixed separator."""
    return AD_KEY_SEPARATOR.join(sorted(headline_texts))


def merge_keywords(existing_texts: Iterable[str], drafts: Iterable[KeywordDraft]) -> List[KeywordDraft]:
    """
    Drafts to insert into an ad group that already holds `existing_texts`.

    Texts already present (persisted, or earlier in `drafts`) are dropped;
    their stored bid is left as is.
    """
    seen: Set[str] = set(existing_texts)
    to_insert = []
    for draft in drafts:
        if draft.text in seen:
            continue
        seen.add(draft.text)
        to_insert.append(draft)
    return to_insert


class AdKeyIndex:
    """Dedup keys of one ad group's ads, kept current as new ads are inserted."""

    def __init__(self, headline_sets: Iterable[Iterable[str]] = ()):
        self._keys: Set[str] = {ad_dedup_key(headlines) for headlines in headline_sets}

    def __contains__(self, headlines) -> bool:
        return ad_dedup_key(headlines) in self._keys

    def add(self, headlines: Iterable[str]) -> None:
        self._keys.add(ad_dedup_key(headlines))

    def __len__(self) -> int:
        return len(self._keys)
