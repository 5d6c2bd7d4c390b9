"""
Snapshot Service: immutable copies of a campaign subtree.

Snapshots are appended only. Nothing here updates or deletes an existing
CampaignSnapshot.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from campaign_builder.models.campaign import Ad, AdGroup, Campaign, Keyword
from campaign_builder.models.snapshot import CampaignSnapshot, SNAPSHOT_TYPES
from campaign_builder.services.import_errors import SnapshotError
from campaign_builder.utils.helpers import decimal_to_float

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _campaign_dict(campaign: Campaign) -> Dict:
    return {
        "id": campaign.id,
        "name": campaign.name,
        "status": campaign.status,
        "budget": decimal_to_float(campaign.budget),
        "final_url": campaign.final_url,
        "path1": campaign.path1,
        "path2": campaign.path2,
        "created_at": _iso(campaign.created_at),
        "updated_at": _iso(campaign.updated_at),
    }


def _ad_group_dict(ad_group: AdGroup, keywords: List[Keyword]) -> Dict:
    return {
        "id": ad_group.id,
        "campaign_id": ad_group.campaign_id,
        "name": ad_group.name,
        "status": ad_group.status,
        "max_cpc": decimal_to_float(ad_group.max_cpc),
        "keywords": [
            {
                "id": kw.id,
                "text": kw.text,
                "match_type": kw.match_type,
                "max_cpc": decimal_to_float(kw.max_cpc),
            }
            for kw in keywords
        ],
        "created_at": _iso(ad_group.created_at),
        "updated_at": _iso(ad_group.updated_at),
    }


def _ad_dict(ad: Ad) -> Dict:
    return {
        "id": ad.id,
        "ad_group_id": ad.ad_group_id,
        "headlines": list(ad.headlines or []),
        "descriptions": list(ad.descriptions or []),
        "final_url": ad.final_url,
        "path1": ad.path1,
        "path2": ad.path2,
        "status": ad.status,
        "created_at": _iso(ad.created_at),
        "updated_at": _iso(ad.updated_at),
    }


class SnapshotService:
    def __init__(self, db: Session):
        self.db = db

    def take_snapshot(self, campaign_id: str, snapshot_type: str, description: str = "") -> CampaignSnapshot:
        """
        Capture the campaign, its ad groups (with keywords) and its ads.

        Reads only rows belonging to this campaign. Pending changes in the
        session are flushed first so the snapshot sees them.
        """
        if snapshot_type not in SNAPSHOT_TYPES:
            raise SnapshotError(f"Unknown snapshot type '{snapshot_type}'")

        self.db.flush()
        campaign = self.db.get(Campaign, campaign_id)
        if campaign is None:
            raise SnapshotError(f"Campaign {campaign_id} not found")

        ad_groups = (
            self.db.query(AdGroup)
            .filter(AdGroup.campaign_id == campaign_id)
            .order_by(AdGroup.created_at)
            .all()
        )
        keywords = (
            self.db.query(Keyword)
            .join(AdGroup, Keyword.ad_group_id == AdGroup.id)
            .filter(AdGroup.campaign_id == campaign_id)
            .order_by(Keyword.created_at)
            .all()
        )
        ads = (
            self.db.query(Ad)
            .join(AdGroup, Ad.ad_group_id == AdGroup.id)
            .filter(AdGroup.campaign_id == campaign_id)
            .order_by(Ad.created_at)
            .all()
        )

        keywords_by_group: Dict[str, List[Keyword]] = defaultdict(list)
        for kw in keywords:
            keywords_by_group[kw.ad_group_id].append(kw)

        now = datetime.utcnow()
        snapshot = CampaignSnapshot(
            campaign_id=campaign_id,
            snapshot_type=snapshot_type,
            snapshot_data={
                "campaign": _campaign_dict(campaign),
                "ad_groups": [_ad_group_dict(ag, keywords_by_group[ag.id]) for ag in ad_groups],
                "ads": [_ad_dict(ad) for ad in ads],
                "timestamp": now.isoformat(),
            },
            description=description,
            created_at=now,
        )
        self.db.add(snapshot)
        self.db.flush()
        logger.info(f"  Snapshot {snapshot.id} taken for campaign {campaign.name} ({snapshot_type})")
        return snapshot

    def list_snapshots(self, campaign_id: str, limit: int = 50) -> List[Dict]:
        """Snapshots of one campaign, newest first."""
        rows = (
            self.db.query(CampaignSnapshot)
            .filter(CampaignSnapshot.campaign_id == campaign_id)
            .order_by(CampaignSnapshot.created_at.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                "id": s.id,
                "campaign_id": s.campaign_id,
                "snapshot_type": s.snapshot_type,
                "description": s.description,
                "created_by": s.created_by,
                "created_at": _iso(s.created_at),
                "snapshot_data": s.snapshot_data,
            }
            for s in rows
        ]
