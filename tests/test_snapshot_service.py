"""
Snapshot service tests.

Guards against:
1. Snapshots missing ad groups / keywords added earlier in the same transaction
2. Snapshots leaking rows from other campaigns
3. Unknown snapshot types being stored
"""
from decimal import Decimal

import pytest

from campaign_builder.models.campaign import Ad, AdGroup, Campaign, Keyword
from campaign_builder.models.snapshot import CampaignSnapshot
from campaign_builder.services.import_errors import SnapshotError
from campaign_builder.services.snapshot_service import SnapshotService


def _seed(db, name="Brand"):
    campaign = Campaign(name=name, status="active", budget=Decimal("25.00"))
    db.add(campaign)
    db.flush()
    ad_group = AdGroup(campaign_id=campaign.id, name="Core", status="active", max_cpc=Decimal("1.10"))
    db.add(ad_group)
    db.flush()
    db.add(Keyword(ad_group_id=ad_group.id, text="brand shoes", match_type="exact"))
    db.add(Ad(
        ad_group_id=ad_group.id,
        headlines=[{"id": "h1", "text": "Brand Shoes"}],
        descriptions=[{"id": "d1", "text": "Official store."}],
        status="active",
    ))
    return campaign


def test_snapshot_captures_subtree(db):
    campaign = _seed(db)
    _seed(db, name="Other")

    snapshot = SnapshotService(db).take_snapshot(campaign.id, "manual", "before edit")
    data = snapshot.snapshot_data

    assert data["campaign"]["name"] == "Brand"
    assert data["campaign"]["budget"] == 25.0
    assert len(data["ad_groups"]) == 1
    assert data["ad_groups"][0]["keywords"][0]["text"] == "brand shoes"
    assert len(data["ads"]) == 1
    assert data["ads"][0]["headlines"][0]["text"] == "Brand Shoes"
    assert "timestamp" in data
    assert snapshot.created_by == "system"
    assert snapshot.description == "before edit"


def test_snapshot_rejects_unknown_type(db):
    campaign = _seed(db)
    with pytest.raises(SnapshotError):
        SnapshotService(db).take_snapshot(campaign.id, "nightly")
    assert db.query(CampaignSnapshot).count() == 0


def test_snapshot_missing_campaign(db):
    with pytest.raises(SnapshotError):
        SnapshotService(db).take_snapshot("does-not-exist", "manual")


def test_list_snapshots_newest_first(db):
    campaign = _seed(db)
    service = SnapshotService(db)
    first = service.take_snapshot(campaign.id, "manual", "first")
    second = service.take_snapshot(campaign.id, "import", "second")
    db.commit()

    listed = service.list_snapshots(campaign.id)
    assert [s["id"] for s in listed] == [second.id, first.id]
    assert service.list_snapshots(campaign.id, limit=1)[0]["description"] == "second"
