"""
Row folding: turns the flat Editor export into Campaign → AdGroup → {Keywords, Ads}.

Rows for one campaign do not have to be contiguous. Campaigns and ad groups
are keyed by name in insertion-ordered dicts; the first row that mentions an
entity decides its attributes.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from campaign_builder.services.import_columns import (
    ColumnSchema,
    DEFAULTS,
    DESCRIPTION_FIELDS,
    HEADLINE_FIELDS,
    parse_decimal,
    parse_match_type,
    parse_status,
)
from campaign_builder.services.import_errors import RowParseError
from campaign_builder.services.import_result import ImportIssue

logger = logging.getLogger(__name__)


@dataclass
class KeywordDraft:
    text: str
    match_type: str = "broad"
    max_cpc: Optional[Decimal] = None
    row: Optional[int] = None


@dataclass
class AdDraft:
    headlines: List[str]
    descriptions: List[str]
    final_url: str = ""
    path1: str = ""
    path2: str = ""
    status: str = "active"
    row: Optional[int] = None


@dataclass
class AdGroupDraft:
    name: str
    # Only the attributes present on the first-seen row
    attributes: Dict[str, Any] = field(default_factory=dict)
    keywords: List[KeywordDraft] = field(default_factory=list)
    ads: List[AdDraft] = field(default_factory=list)
    row: Optional[int] = None


@dataclass
class CampaignDraft:
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    ad_groups: Dict[str, AdGroupDraft] = field(default_factory=dict)
    row: Optional[int] = None


@dataclass
class FoldResult:
    campaigns: Dict[str, CampaignDraft] = field(default_factory=dict)
    errors: List[ImportIssue] = field(default_factory=list)
    warnings: List[ImportIssue] = field(default_factory=list)


def _campaign_attributes(row: Mapping[str, Any], schema: ColumnSchema) -> Dict[str, Any]:
    attrs: Dict[str, Any] = {}
    status = schema.get(row, "campaign_status")
    if status is not None:
        attrs["status"] = parse_status(status, DEFAULTS["campaign"]["status"])
    budget = parse_decimal(schema.get(row, "budget"), "budget")
    if budget is not None:
        attrs["budget"] = budget
    for name in ("final_url", "path1", "path2"):
        value = schema.get(row, name)
        if value is not None:
            attrs[name] = value
    return attrs


def _ad_group_attributes(row: Mapping[str, Any], schema: ColumnSchema,
                         max_cpc: Optional[Decimal]) -> Dict[str, Any]:
    attrs: Dict[str, Any] = {}
    status = schema.get(row, "ad_group_status")
    if status is not None:
        attrs["status"] = parse_status(status, DEFAULTS["ad_group"]["status"])
    if max_cpc is not None:
        attrs["max_cpc"] = max_cpc
    return attrs


def _collect(row: Mapping[str, Any], schema: ColumnSchema, fields: List[str]) -> List[str]:
    """Non-empty values of numbered columns, in column order."""
    values = []
    for name in fields:
        value = schema.get(row, name)
        if value:
            values.append(value)
    return values


def _ad_draft(row: Mapping[str, Any], schema: ColumnSchema, row_num: int) -> Optional[AdDraft]:
    headlines = _collect(row, schema, HEADLINE_FIELDS)
    descriptions = _collect(row, schema, DESCRIPTION_FIELDS)
    if not headlines or not descriptions:
        return None
    defaults = DEFAULTS["ad"]
    return AdDraft(
        headlines=headlines,
        descriptions=descriptions,
        final_url=schema.get(row, "final_url") or defaults["final_url"],
        path1=schema.get(row, "path1") or defaults["path1"],
        path2=schema.get(row, "path2") or defaults["path2"],
        status=parse_status(schema.get(row, "ad_status"), defaults["status"]),
        row=row_num,
    )


def fold_rows(rows: Iterable[Mapping[str, Any]], schema: ColumnSchema) -> FoldResult:
    """
    Build the draft tree from parsed rows.

    Row numbers in errors and warnings are 1-based data rows (header excluded).
    A row with a malformed value is reported once and contributes nothing.
    Campaign attributes are only parsed on the row that first names the
    campaign, since later rows cannot change them.
    """
    result = FoldResult()

    for row_num, row in enumerate(rows, start=1):
        campaign_name = schema.get(row, "campaign_name")
        if not campaign_name:
            result.warnings.append(ImportIssue(row=row_num, message="Row missing campaign name, skipping"))
            continue

        campaign = result.campaigns.get(campaign_name)
        try:
            # Parse everything up front so a bad row leaves no partial drafts behind
            campaign_attrs = _campaign_attributes(row, schema) if campaign is None else None
            max_cpc = parse_decimal(schema.get(row, "max_cpc"), "max_cpc")
            ad_group_name = schema.get(row, "ad_group_name")
            ad_group_attrs = _ad_group_attributes(row, schema, max_cpc) if ad_group_name else {}
        except RowParseError as e:
            logger.warning(f"  Row {row_num} error: {e}")
            result.errors.append(ImportIssue(
                row=row_num, field=e.field, value=e.value, message=f"Error parsing row: {e}",
            ))
            continue

        if campaign is None:
            campaign = CampaignDraft(name=campaign_name, attributes=campaign_attrs, row=row_num)
            result.campaigns[campaign_name] = campaign

        if not ad_group_name:
            continue  # Campaign-only row

        ad_group = campaign.ad_groups.get(ad_group_name)
        if ad_group is None:
            ad_group = AdGroupDraft(name=ad_group_name, attributes=ad_group_attrs, row=row_num)
            campaign.ad_groups[ad_group_name] = ad_group

        keyword_text = schema.get(row, "keyword")
        if keyword_text:
            ad_group.keywords.append(KeywordDraft(
                text=keyword_text,
                match_type=parse_match_type(schema.get(row, "match_type")),
                max_cpc=max_cpc,
                row=row_num,
            ))

        ad = _ad_draft(row, schema, row_num)
        if ad is not None:
            ad_group.ads.append(ad)

    return result
