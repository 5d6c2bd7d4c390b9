"""
Editor CSV import tests, end to end against an in-memory store.

Guards against:
1. Re-imports creating duplicate campaigns, ad groups, ads or keywords
2. Reordered headlines producing a second copy of the same ad
3. A structural failure mid-import leaving earlier campaigns committed
4. Existing campaigns being touched when update_existing is off
5. Import records left in `processing` after a run
"""
from decimal import Decimal

from campaign_builder.models.campaign import Ad, AdGroup, Campaign, Keyword
from campaign_builder.models.import_record import ImportRecord
from campaign_builder.models.snapshot import CampaignSnapshot
from campaign_builder.services.campaign_import_service import CampaignImportService
from campaign_builder.services.import_errors import ImportAbortedError, SnapshotError
from campaign_builder.services.reconciliation import ImportOptions, ReconciliationEngine
from campaign_builder.services.snapshot_service import SnapshotService

from conftest import make_csv

SPRING_SALE = [
    {"campaign": "Spring Sale", "adGroup": "Shoes", "headline1": "50% Off",
     "description1": "Shop now and save.", "keyword": "", "matchType": ""},
    {"campaign": "Spring Sale", "adGroup": "Shoes", "headline1": "", "description1": "",
     "keyword": "running shoes", "matchType": "Exact"},
]


def _import(db, rows, **options):
    return CampaignImportService(db).import_editor_csv(make_csv(rows), "export.csv", ImportOptions(**options))


# ---------------------------------------------------------------------------
# Basic import
# ---------------------------------------------------------------------------

def test_spring_sale_scenario(db):
    result = _import(db, SPRING_SALE)

    assert result.success
    assert result.stats.campaigns_created == 1
    assert result.stats.ad_groups_created == 1
    assert result.stats.ads_created == 1
    assert result.stats.keywords_created == 1
    assert result.errors == []
    assert result.warnings == []

    keyword = db.query(Keyword).one()
    assert keyword.text == "running shoes"
    assert keyword.match_type == "exact"

    ad = db.query(Ad).one()
    assert ad.headline_texts == ["50% Off"]
    assert ad.descriptions[0]["text"] == "Shop now and save."


def test_new_campaign_gets_defaults(db):
    _import(db, [{"Campaign": "Plain", "Ad Group": "G"}])
    campaign = db.query(Campaign).one()
    assert campaign.status == "active"
    assert campaign.budget == Decimal("0")
    assert campaign.final_url == ""
    ad_group = db.query(AdGroup).one()
    assert ad_group.status == "active"
    assert ad_group.max_cpc is None


def test_editor_headers_with_bom(db):
    content = "\ufeffCampaign,Ad Group,Keyword\nBrand,Core,brand shoes\n".encode("utf-8")
    result = CampaignImportService(db).import_editor_csv(content, "editor.csv", ImportOptions())
    assert result.success
    assert result.stats.keywords_created == 1


# ---------------------------------------------------------------------------
# Idempotence and dedup
# ---------------------------------------------------------------------------

def test_reimport_creates_nothing(db):
    _import(db, SPRING_SALE)
    second = _import(db, SPRING_SALE)

    assert second.success
    assert second.stats.campaigns_created == 0
    assert second.stats.ad_groups_created == 0
    assert second.stats.ads_created == 0
    assert second.stats.keywords_created == 0
    assert db.query(Campaign).count() == 1
    assert db.query(Ad).count() == 1


def test_reimport_with_update_existing_merges(db):
    _import(db, SPRING_SALE)
    rows = SPRING_SALE + [
        {"campaign": "Spring Sale", "adGroup": "Shoes", "keyword": "trail shoes", "matchType": "Phrase"},
    ]
    second = _import(db, rows, update_existing=True)

    assert second.stats.campaigns_updated == 1
    assert second.stats.ad_groups_updated == 1
    assert second.stats.ads_created == 0
    assert second.stats.ads_updated == 1
    assert second.stats.keywords_created == 1
    assert db.query(Keyword).filter(Keyword.text == "running shoes").count() == 1
    assert db.query(Keyword).count() == 2


def test_reordered_headlines_are_one_ad(db):
    rows = [
        {"Campaign": "C", "Ad Group": "G", "Headline 1": "A", "Headline 2": "B", "Headline 3": "C",
         "Description 1": "First"},
        {"Campaign": "C", "Ad Group": "G", "Headline 1": "C", "Headline 2": "A", "Headline 3": "B",
         "Description 1": "Second"},
    ]
    result = _import(db, rows)
    assert result.stats.ads_created == 1
    assert db.query(Ad).count() == 1


def test_duplicate_keyword_rows_insert_once(db):
    rows = [
        {"Campaign": "C", "Ad Group": "G", "Keyword": "shoes", "Match Type": "Exact"},
        {"Campaign": "C", "Ad Group": "G", "Keyword": "shoes", "Match Type": "Broad"},
    ]
    result = _import(db, rows)
    assert result.stats.keywords_created == 1
    assert db.query(Keyword).one().match_type == "exact"


def test_first_seen_budget_wins(db):
    rows = [
        {"Campaign": "Budgeted", "Budget": "40.00"},
        {"Campaign": "Budgeted", "Budget": "90.00"},
    ]
    _import(db, rows)
    assert db.query(Campaign).one().budget == Decimal("40.00")


def test_update_applies_only_present_attributes(db):
    _import(db, [{"Campaign": "C", "Budget": "40", "Final URL": "https://example.com"}])
    _import(db, [{"Campaign": "C", "Budget": "55"}], update_existing=True)
    campaign = db.query(Campaign).one()
    assert campaign.budget == Decimal("55")
    assert campaign.final_url == "https://example.com"


# ---------------------------------------------------------------------------
# Skip cascade
# ---------------------------------------------------------------------------

def test_existing_campaign_skips_new_ad_groups(db):
    _import(db, [{"Campaign": "Brand", "Ad Group": "Core"}])
    result = _import(db, [
        {"Campaign": "Brand", "Ad Group": "Brand New Group", "Keyword": "fresh"},
        {"Campaign": "Other", "Ad Group": "G", "Keyword": "x"},
    ])

    assert result.success
    assert result.stats.campaigns_created == 1
    assert result.stats.ad_groups_created == 1  # Only under "Other"
    brand = db.query(Campaign).filter(Campaign.name == "Brand").one()
    assert [ag.name for ag in db.query(AdGroup).filter(AdGroup.campaign_id == brand.id)] == ["Core"]


# ---------------------------------------------------------------------------
# Errors and atomicity
# ---------------------------------------------------------------------------

def test_structural_failure_rolls_back_everything(db, monkeypatch):
    original = ReconciliationEngine.reconcile_campaign
    calls = {"n": 0}

    def failing(self, draft):
        calls["n"] += 1
        if calls["n"] == 3:
            raise ImportAbortedError("Store rejected campaign")
        return original(self, draft)

    monkeypatch.setattr(ReconciliationEngine, "reconcile_campaign", failing)

    rows = [{"Campaign": f"Campaign {i}", "Ad Group": "G", "Keyword": f"kw {i}"} for i in range(1, 6)]
    result = _import(db, rows)

    assert not result.success
    assert result.stats.campaigns_created == 0
    assert result.stats.ad_groups_created == 0
    assert result.stats.keywords_created == 0
    assert result.stats.errors_count == 1
    assert result.errors[0].message == "Store rejected campaign"
    assert db.query(Campaign).count() == 0
    assert db.query(CampaignSnapshot).count() == 0

    record = db.get(ImportRecord, result.import_id)
    assert record.status == "failed"
    assert record.entities_imported == 0
    assert record.errors[0]["message"] == "Store rejected campaign"


def test_unexpected_exception_is_fatal_import_error(db, monkeypatch):
    def boom(self, campaigns):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(ReconciliationEngine, "run", boom)
    result = _import(db, SPRING_SALE)
    assert result.errors[0].message == "Fatal import error: disk on fire"
    assert db.get(ImportRecord, result.import_id).status == "failed"


def test_empty_input_fails(db):
    result = CampaignImportService(db).import_editor_csv(b"", "empty.csv", ImportOptions())
    assert not result.success
    assert result.errors[0].message == "CSV file is empty or has no data rows"


def test_header_only_input_fails(db):
    result = CampaignImportService(db).import_editor_csv(b"Campaign,Ad Group\n", "empty.csv", ImportOptions())
    assert not result.success
    assert db.get(ImportRecord, result.import_id).status == "failed"


def test_missing_campaign_column_fails(db):
    content = make_csv([{"Ad Group": "G", "Keyword": "k"}])
    result = CampaignImportService(db).import_editor_csv(content, "bad.csv", ImportOptions())
    assert not result.success
    assert result.errors[0].message == "Required column 'Campaign' not found in CSV header"
    assert db.query(AdGroup).count() == 0


def test_row_errors_do_not_abort(db):
    rows = [
        {"Campaign": "Good", "Ad Group": "G", "Budget": "10", "Keyword": "k"},
        {"Campaign": "Bad", "Ad Group": "G", "Budget": "ten", "Keyword": "k"},
        {"Campaign": "", "Ad Group": "G", "Budget": "", "Keyword": "k"},
    ]
    result = _import(db, rows)

    assert not result.success
    assert result.stats.campaigns_created == 1
    assert result.stats.errors_count == 1
    assert result.errors[0].row == 2
    assert result.warnings[0].row == 3
    assert db.get(ImportRecord, result.import_id).status == "completed"


def test_overlong_headline_is_rejected(db):
    rows = [
        {"Campaign": "C", "Ad Group": "G", "Headline 1": "H" * 31, "Description 1": "D"},
        {"Campaign": "C", "Ad Group": "G", "Headline 1": "Short", "Description 1": "D"},
    ]
    result = _import(db, rows)
    assert result.stats.ads_created == 1
    assert len(result.errors) == 1
    assert result.errors[0].row == 1
    assert result.errors[0].field == "headline"


# ---------------------------------------------------------------------------
# Records and snapshots
# ---------------------------------------------------------------------------

def test_import_record_completed(db):
    result = _import(db, SPRING_SALE)
    record = db.get(ImportRecord, result.import_id)
    assert record.status == "completed"
    assert record.import_type == "editor_export"
    assert record.filename == "export.csv"
    assert record.entities_imported == 4
    assert record.completed_at is not None


def test_snapshot_per_processed_campaign(db):
    _import(db, [{"Campaign": "A"}, {"Campaign": "B"}])
    assert db.query(CampaignSnapshot).count() == 2

    # Skipped campaigns are not snapshotted
    _import(db, [{"Campaign": "A"}, {"Campaign": "C"}])
    assert db.query(CampaignSnapshot).count() == 3


def test_snapshots_can_be_disabled(db):
    _import(db, [{"Campaign": "A"}], create_snapshot=False)
    assert db.query(CampaignSnapshot).count() == 0


def test_history_lists_imports(db):
    service = CampaignImportService(db)
    first = _import(db, SPRING_SALE)
    history = service.list_imports()
    assert history[0]["id"] == first.import_id
    assert "errors" not in history[0]
    detail = service.get_import(first.import_id)
    assert detail["errors"] == []
    assert service.get_import("missing") is None


def test_merge_keeps_existing_keyword_bid(db):
    _import(db, [{"Campaign": "C", "Ad Group": "G", "Keyword": "shoes", "Max CPC": "1.00"}])
    second = _import(db, [{"Campaign": "C", "Ad Group": "G", "Keyword": "shoes", "Max CPC": "9.00"}],
                     update_existing=True)

    assert second.stats.keywords_created == 0
    assert db.query(Keyword).one().max_cpc == Decimal("1.00")


def test_failed_snapshot_is_a_warning(db, monkeypatch):
    def refuse(self, campaign_id, snapshot_type, description=""):
        raise SnapshotError("store full")

    monkeypatch.setattr(SnapshotService, "take_snapshot", refuse)
    result = _import(db, [{"Campaign": "C", "Ad Group": "G", "Keyword": "shoes"}])

    assert result.success
    assert len(result.warnings) == 1
    assert result.warnings[0].message == "Snapshot failed for campaign 'C': store full"
    assert result.stats.campaigns_created == 1
    assert result.stats.keywords_created == 1
    assert db.query(CampaignSnapshot).count() == 0
    assert db.get(ImportRecord, result.import_id).status == "completed"
