"""
Column resolution for Google Ads Editor and report CSV exports.

Exports spell the same column several ways ("campaign" from the app's own
export, "Campaign" from Google Ads Editor, "Ad group" from the web UI...).
ColumnSchema is built once per file from the header row and maps every
canonical field to the raw headers that carry it, so each row is read the
same way without inspecting it.

All default values used when a column is absent live in DEFAULTS.
"""
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Mapping, Optional

from campaign_builder.services.import_errors import RowParseError

MAX_HEADLINES = 15
MAX_DESCRIPTIONS = 4

# ── Column aliases ───────────────────────────────────────────────────
# Matched case-insensitively after trimming and collapsing whitespace.

FIELD_ALIASES: Dict[str, tuple] = {
    # Editor export: campaign level
    "campaign_name": ("campaign", "Campaign", "Campaign name"),
    "campaign_status": ("campaignStatus", "Campaign Status", "Campaign state"),
    "budget": ("budget", "Budget", "Daily budget"),
    "final_url": ("finalUrl", "Final URL"),
    "path1": ("path1", "Path 1"),
    "path2": ("path2", "Path 2"),
    # Ad group level
    "ad_group_name": ("adGroup", "Ad Group", "Ad group name", "ad_group"),
    "ad_group_status": ("adGroupStatus", "Ad Group Status", "Ad group state"),
    "max_cpc": ("maxCpc", "Max CPC", "Default max. CPC"),
    # Keyword
    "keyword": ("keyword", "Keyword"),
    "match_type": ("matchType", "Match Type", "Criterion Type", "match_type"),
    # Ad
    "ad_status": ("adStatus", "Ad Status", "Ad state"),
    # Performance report
    "impressions": ("impressions", "Impressions", "Impr."),
    "clicks": ("clicks", "Clicks"),
    "cost": ("cost", "Cost"),
    "conversions": ("conversions", "Conversions", "Conv."),
    "ctr": ("ctr", "CTR"),
    "avg_cpc": ("avgCpc", "Avg. CPC", "avg_cpc"),
    # Search terms report
    "search_term": ("searchTerm", "Search term", "search_term"),
}
for _i in range(1, MAX_HEADLINES + 1):
    FIELD_ALIASES[f"headline{_i}"] = (f"headline{_i}", f"Headline {_i}")
for _i in range(1, MAX_DESCRIPTIONS + 1):
    FIELD_ALIASES[f"description{_i}"] = (f"description{_i}", f"Description {_i}")

HEADLINE_FIELDS = [f"headline{i}" for i in range(1, MAX_HEADLINES + 1)]
DESCRIPTION_FIELDS = [f"description{i}" for i in range(1, MAX_DESCRIPTIONS + 1)]

# ── Defaults ─────────────────────────────────────────────────────────
# The only place fallback values are decided. Consulted by the row folder
# (unrecognised values) and by the reconciliation engine (absent columns).

DEFAULTS: Dict[str, Dict] = {
    "campaign": {
        "status": "active",
        "budget": Decimal("0"),
        "final_url": "",
        "path1": "",
        "path2": "",
    },
    "ad_group": {
        "status": "active",
        "max_cpc": None,
    },
    "keyword": {
        "match_type": "broad",
        "max_cpc": None,
    },
    "ad": {
        "status": "active",
        "final_url": "",
        "path1": "",
        "path2": "",
    },
}

# Google Ads responsive search ad limits
AD_LIMITS = {
    "headline": 30,
    "description": 90,
    "path": 15,
}

_STATUS_MAP = {
    "enabled": "active",
    "active": "active",
    "paused": "paused",
    "removed": "draft",
    "deleted": "draft",
    "disabled": "draft",
}

_MATCH_TYPE_MAP = {
    "exact": "exact",
    "[exact]": "exact",
    "phrase": "phrase",
    '"phrase"': "phrase",
}


def _normalize_header(header: str) -> str:
    """Lowercase, strip, collapse internal whitespace."""
    return re.sub(r"\s+", " ", str(header).strip().lower())


_ALIAS_LOOKUP: Dict[str, str] = {}
for _field, _aliases in FIELD_ALIASES.items():
    for _alias in _aliases:
        _ALIAS_LOOKUP.setdefault(_normalize_header(_alias), _field)


@dataclass
class ColumnSchema:
    """Canonical field → raw headers present in this file, in header order."""
    columns: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_headers(cls, headers: Iterable[str]) -> "ColumnSchema":
        columns: Dict[str, List[str]] = {}
        for raw in headers:
            canonical = _ALIAS_LOOKUP.get(_normalize_header(raw))
            if canonical:
                columns.setdefault(canonical, []).append(raw)
        return cls(columns)

    def has(self, field_name: str) -> bool:
        return field_name in self.columns

    def get(self, row: Mapping[str, object], field_name: str) -> Optional[str]:
        """First non-empty trimmed value for the field, or None when absent."""
        for raw in self.columns.get(field_name, ()):
            value = row.get(raw)
            if value is None:
                continue
            text = str(value).strip()
            if text:
                return text
        return None


# ── Value parsing ────────────────────────────────────────────────────

def parse_status(value: Optional[str], default: str) -> str:
    """Editor status → active | paused | draft."""
    if not value:
        return default
    return _STATUS_MAP.get(value.strip().lower(), default)


def parse_match_type(value: Optional[str]) -> str:
    """Editor match type → exact | phrase | broad."""
    if not value:
        return DEFAULTS["keyword"]["match_type"]
    return _MATCH_TYPE_MAP.get(value.strip().lower(), "broad")


def parse_decimal(value: Optional[str], field_name: str) -> Optional[Decimal]:
    """Money value. '$1,250.00' → Decimal('1250.00'); empty → None."""
    if value is None:
        return None
    s = str(value).replace("$", "").replace(",", "").replace(" ", "").strip()
    if not s or s == "--":
        return None
    try:
        parsed = Decimal(s)
    except InvalidOperation:
        raise RowParseError(f"Invalid number for {field_name}: '{value}'", field=field_name, value=str(value))
    if not parsed.is_finite():
        raise RowParseError(f"Invalid number for {field_name}: '{value}'", field=field_name, value=str(value))
    return parsed


def parse_int(value: Optional[str], field_name: str) -> int:
    """Report count. '1,204' → 1204; empty or '--' → 0."""
    if value is None:
        return 0
    s = str(value).replace(",", "").replace(" ", "").strip()
    if not s or s == "--":
        return 0
    try:
        return int(float(s))
    except (ValueError, TypeError):
        raise RowParseError(f"Invalid number for {field_name}: '{value}'", field=field_name, value=str(value))


def parse_float(value: Optional[str], field_name: str) -> float:
    """Report metric. Strips currency and percent signs; empty or '--' → 0.0."""
    if value is None:
        return 0.0
    s = str(value).replace("$", "").replace(",", "").replace("%", "").replace(" ", "").strip()
    if not s or s == "--":
        return 0.0
    try:
        return float(s)
    except (ValueError, TypeError):
        raise RowParseError(f"Invalid number for {field_name}: '{value}'", field=field_name, value=str(value))
