"""
Reconciliation: merges a folded draft tree into the persisted campaign structure.

Per campaign and per ad group the decision is create, update or skip:

    exists + update_existing  → update attributes present in the draft
    exists + !update_existing → skip the entity and everything below it
    missing                   → create, filling absent attributes from DEFAULTS

Keywords and ads of created/updated ad groups are merged through the dedup
rules. The caller owns the transaction; nothing here commits.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable

from sqlalchemy.orm import Session

from campaign_builder.models.campaign import Ad, AdGroup, Campaign, Keyword
from campaign_builder.services.dedup import AdKeyIndex, merge_keywords
from campaign_builder.services.import_columns import AD_LIMITS, DEFAULTS, MAX_DESCRIPTIONS, MAX_HEADLINES
from campaign_builder.services.import_errors import EntityValidationError, SnapshotError
from campaign_builder.services.import_result import ImportResult
from campaign_builder.services.row_folder import AdDraft, AdGroupDraft, CampaignDraft
from campaign_builder.services.snapshot_service import SnapshotService
from campaign_builder.utils.helpers import generate_id

logger = logging.getLogger(__name__)


@dataclass
class ImportOptions:
    update_existing: bool = False
    create_snapshot: bool = True


def validate_ad(draft: AdDraft) -> None:
    """Raise EntityValidationError when the draft breaks Google Ads limits."""
    if len(draft.headlines) > MAX_HEADLINES:
        raise EntityValidationError(
            f"Ad has {len(draft.headlines)} headlines (max {MAX_HEADLINES})", row=draft.row, field="headlines",
        )
    if len(draft.descriptions) > MAX_DESCRIPTIONS:
        raise EntityValidationError(
            f"Ad has {len(draft.descriptions)} descriptions (max {MAX_DESCRIPTIONS})",
            row=draft.row, field="descriptions",
        )
    for text in draft.headlines:
        if len(text) > AD_LIMITS["headline"]:
            raise EntityValidationError(
                f"Headline exceeds {AD_LIMITS['headline']} characters", row=draft.row, field="headline", value=text,
            )
    for text in draft.descriptions:
        if len(text) > AD_LIMITS["description"]:
            raise EntityValidationError(
                f"Description exceeds {AD_LIMITS['description']} characters",
                row=draft.row, field="description", value=text,
            )
    for name in ("path1", "path2"):
        value = getattr(draft, name)
        if len(value) > AD_LIMITS["path"]:
            raise EntityValidationError(
                f"{name} exceeds {AD_LIMITS['path']} characters", row=draft.row, field=name, value=value,
            )


class ReconciliationEngine:
    def __init__(self, db: Session, options: ImportOptions, result: ImportResult):
        self.db = db
        self.options = options
        self.result = result
        self.snapshots = SnapshotService(db)

    def run(self, campaigns: Dict[str, CampaignDraft]) -> None:
        """Reconcile every campaign draft in insertion order."""
        for draft in campaigns.values():
            self.reconcile_campaign(draft)

    # ── Campaigns ────────────────────────────────────────────────────

    def reconcile_campaign(self, draft: CampaignDraft) -> None:
        stats = self.result.stats
        campaign = self.db.query(Campaign).filter(Campaign.name == draft.name).first()

        if campaign is not None and not self.options.update_existing:
            logger.info(f"  Campaign '{draft.name}' exists, skipping")
            return

        if campaign is not None:
            for attr, value in draft.attributes.items():
                setattr(campaign, attr, value)
            stats.campaigns_updated += 1
        else:
            values = {**DEFAULTS["campaign"], **draft.attributes}
            campaign = Campaign(id=generate_id(), name=draft.name, **values)
            self.db.add(campaign)
            stats.campaigns_created += 1
        self.db.flush()

        if self.options.create_snapshot:
            try:
                self.snapshots.take_snapshot(campaign.id, "import", "Pre-import snapshot")
            except SnapshotError as e:
                logger.warning(f"  Snapshot failed for campaign '{draft.name}': {e}")
                self.result.add_warning(f"Snapshot failed for campaign '{draft.name}': {e}", row=draft.row)

        for ad_group_draft in draft.ad_groups.values():
            self.reconcile_ad_group(campaign, ad_group_draft)

    # ── Ad groups ────────────────────────────────────────────────────

    def reconcile_ad_group(self, campaign: Campaign, draft: AdGroupDraft) -> None:
        stats = self.result.stats
        ad_group = self.db.query(AdGroup).filter(
            AdGroup.campaign_id == campaign.id,
            AdGroup.name == draft.name,
        ).first()

        if ad_group is not None and not self.options.update_existing:
            logger.info(f"  Ad group '{campaign.name} / {draft.name}' exists, skipping")
            return

        if ad_group is not None:
            for attr, value in draft.attributes.items():
                setattr(ad_group, attr, value)
            stats.ad_groups_updated += 1
        else:
            values = {**DEFAULTS["ad_group"], **draft.attributes}
            ad_group = AdGroup(id=generate_id(), campaign_id=campaign.id, name=draft.name, **values)
            self.db.add(ad_group)
            stats.ad_groups_created += 1
        self.db.flush()

        self.merge_keywords(ad_group, draft)
        self.merge_ads(ad_group, draft.ads)
        self.db.flush()

    # ── Keywords and ads ─────────────────────────────────────────────

    def merge_keywords(self, ad_group: AdGroup, draft: AdGroupDraft) -> None:
        existing = [text for (text,) in self.db.query(Keyword.text).filter(Keyword.ad_group_id == ad_group.id)]
        for kw in merge_keywords(existing, draft.keywords):
            self.db.add(Keyword(
                id=generate_id(),
                ad_group_id=ad_group.id,
                text=kw.text,
                match_type=kw.match_type,
                max_cpc=kw.max_cpc,
            ))
            self.result.stats.keywords_created += 1

    def merge_ads(self, ad_group: AdGroup, drafts: Iterable[AdDraft]) -> None:
        stats = self.result.stats
        persisted = self.db.query(Ad).filter(Ad.ad_group_id == ad_group.id).all()
        index = AdKeyIndex(ad.headline_texts for ad in persisted)

        for draft in drafts:
            try:
                validate_ad(draft)
            except EntityValidationError as e:
                logger.warning(f"  Row {e.row} ad rejected: {e}")
                self.result.add_error(str(e), row=e.row, field=e.field, value=e.value)
                continue

            if draft.headlines in index:
                if self.options.update_existing:
                    stats.ads_updated += 1
                continue

            self.db.add(Ad(
                id=generate_id(),
                ad_group_id=ad_group.id,
                headlines=[{"id": generate_id(), "text": text} for text in draft.headlines],
                descriptions=[{"id": generate_id(), "text": text} for text in draft.descriptions],
                final_url=draft.final_url,
                path1=draft.path1,
                path2=draft.path2,
                status=draft.status,
            ))
            index.add(draft.headlines)
            stats.ads_created += 1
