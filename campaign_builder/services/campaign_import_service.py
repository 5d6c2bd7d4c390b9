"""
Campaign Import Service

Imports campaigns, ad groups, ads and keywords from Google Ads Editor CSV
exports (single files or ZIP bundles of CSVs), plus performance and search
term reports exported from the Google Ads UI.

Every import follows the same record → parse → reconcile → commit → log
cycle. The ImportRecord is committed in `processing` state first; the
entity writes of one file run in a single transaction that is committed
together with the record's final state, or rolled back as a whole.
"""
import io
import zipfile
import zlib
from datetime import date, datetime
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campaign_builder.config import get_settings
from campaign_builder.models.campaign import AdGroup, Campaign
from campaign_builder.models.import_record import ImportRecord
from campaign_builder.models.performance import PerformanceRecord, SearchTerm
from campaign_builder.services.import_columns import (
    ColumnSchema,
    parse_float,
    parse_int,
    parse_match_type,
)
from campaign_builder.services.import_errors import ImportAbortedError, RowParseError
from campaign_builder.services.import_result import ImportResult
from campaign_builder.services.reconciliation import ImportOptions, ReconciliationEngine
from campaign_builder.services.row_folder import fold_rows
from campaign_builder.utils.helpers import generate_id
from campaign_builder.utils.logger import log

Content = Union[bytes, str]

# Words that show up in the header row of Google Ads UI reports
_REPORT_HEADER_HINTS = ("campaign", "ad group", "clicks", "impr", "cost", "search term")


# ── Parsing helpers ──────────────────────────────────────────────────

def _decode(content: Content) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8-sig")  # Handle BOM from Excel / Editor exports
    return content.lstrip("\ufeff")


def _find_header_row(text: str) -> int:
    """Skip the title / date-range lines Google Ads UI reports put above the header."""
    for i, line in enumerate(text.splitlines()):
        if i > 10:
            break
        lower = line.lower()
        if sum(1 for kw in _REPORT_HEADER_HINTS if kw in lower) >= 2:
            return i
    return 0


def _read_rows(content: Content, detect_header: bool = False) -> Tuple[List[str], List[Dict[str, str]]]:
    """Parse CSV content into (headers, rows). Values are strings, never NaN."""
    text = _decode(content)
    if not text.strip():
        raise ImportAbortedError("CSV file is empty or has no data rows")

    skiprows = _find_header_row(text) if detect_header else 0
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skiprows=skiprows,
        )
    except pd.errors.EmptyDataError:
        raise ImportAbortedError("CSV file is empty or has no data rows")
    except pd.errors.ParserError as e:
        raise ImportAbortedError(f"Could not parse CSV: {str(e)[:300]}")

    df.columns = [str(c).strip() for c in df.columns]
    if df.empty:
        raise ImportAbortedError("CSV file is empty or has no data rows")

    df = df.apply(lambda col: col.str.strip())
    return list(df.columns), df.to_dict(orient="records")


def _is_summary_row(campaign_name: Optional[str]) -> bool:
    """Google Ads UI reports append 'Total: ...' rows at the bottom."""
    return bool(campaign_name) and campaign_name.strip().lower().startswith("total")


def _file_extension(filename: str) -> str:
    return PurePosixPath(filename).suffix.lower()


# ── Service ──────────────────────────────────────────────────────────

class CampaignImportService:
    """Runs imports against one database session."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    # ── Editor exports ───────────────────────────────────────────────

    def import_file(self, content: Content, filename: str, options: Optional[ImportOptions] = None) -> ImportResult:
        """Dispatch on extension: .zip bundles, anything else as one CSV."""
        if _file_extension(filename) == ".zip":
            return self.import_zip(content, filename, options)
        return self.import_editor_csv(content, filename, options)

    def import_editor_csv(self, content: Content, filename: str,
                          options: Optional[ImportOptions] = None) -> ImportResult:
        options = options or self.default_options()
        result = ImportResult()

        record = self._start_record(result, filename, "csv", len(content), "editor_export")
        if record is None:
            return result
        log.info(
            f"Editor import {record.id}: {filename} "
            f"(update_existing={options.update_existing}, create_snapshot={options.create_snapshot})"
        )

        def reconcile():
            headers, rows = _read_rows(content)
            schema = ColumnSchema.from_headers(headers)
            if not schema.has("campaign_name"):
                raise ImportAbortedError("Required column 'Campaign' not found in CSV header")

            folded = fold_rows(rows, schema)
            result.errors.extend(folded.errors)
            result.warnings.extend(folded.warnings)
            result.stats.errors_count = len(result.errors)

            ReconciliationEngine(self.db, options, result).run(folded.campaigns)

        self._run_in_transaction(record, result, reconcile)
        return result

    def import_zip(self, content: bytes, filename: str, options: Optional[ImportOptions] = None) -> ImportResult:
        """
        Import every CSV entry of a ZIP bundle, in archive order.

        Counters are summed across entries; errors and warnings carry the
        entry name in `source`. The reported import id is the first entry's.
        """
        options = options or self.default_options()
        aggregate = ImportResult()
        extensions = self.settings.tabular_extensions

        try:
            archive = zipfile.ZipFile(io.BytesIO(content))
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            log.error(f"ZIP import {filename}: unreadable archive: {e}")
            aggregate.add_error(f"Error processing ZIP file: {e}")
            return aggregate

        with archive:
            entries = [
                info for info in archive.infolist()
                if not info.is_dir() and _file_extension(info.filename) in extensions
            ]
            if not entries:
                log.warning(f"ZIP import {filename}: no CSV entries")
                aggregate.add_error("No CSV files found in ZIP archive")
                return aggregate

            log.info(f"ZIP import {filename}: {len(entries)} CSV entr{'y' if len(entries) == 1 else 'ies'}")
            for info in entries:
                try:
                    data = archive.read(info)
                except (zipfile.BadZipFile, OSError, RuntimeError, NotImplementedError, zlib.error) as e:
                    # Encrypted entries, unsupported compression or corrupt data
                    entry_result = ImportResult()
                    entry_result.add_error(f"Could not read archive entry: {e}")
                else:
                    entry_result = self.import_editor_csv(data, info.filename, options)
                aggregate.merge(entry_result, source=info.filename)

        log.info(
            f"ZIP import {filename} done: {aggregate.stats.campaigns_created} campaigns created, "
            f"{aggregate.stats.errors_count} errors"
        )
        return aggregate

    # ── Reports ──────────────────────────────────────────────────────

    def import_performance_data(self, content: Content, filename: str,
                                date_range_start: date, date_range_end: date) -> ImportResult:
        """Attach campaign / ad group metrics for a date range to existing entities."""
        result = ImportResult()
        record = self._start_record(result, filename, "csv", len(content), "performance_report")
        if record is None:
            return result
        log.info(f"Performance import {record.id}: {filename} ({date_range_start} to {date_range_end})")

        def insert_metrics():
            _check_date_range(date_range_start, date_range_end)
            headers, rows = _read_rows(content, detect_header=True)
            schema = ColumnSchema.from_headers(headers)
            if not schema.has("campaign_name"):
                raise ImportAbortedError("Required column 'Campaign' not found in CSV header")

            lookup = _EntityLookup(self.db)
            for row_num, row in enumerate(rows, start=1):
                campaign_name = schema.get(row, "campaign_name")
                if _is_summary_row(campaign_name):
                    continue
                if not campaign_name:
                    result.add_warning("Row missing campaign name, skipping", row=row_num)
                    continue

                campaign = lookup.campaign(campaign_name)
                if campaign is None:
                    result.add_warning(f'Campaign "{campaign_name}" not found in database', row=row_num)
                    continue

                try:
                    metrics = _performance_metrics(row, schema)
                except RowParseError as e:
                    result.add_error(f"Error parsing row: {e}", row=row_num, field=e.field, value=e.value)
                    continue

                ad_group_name = schema.get(row, "ad_group_name")
                if ad_group_name:
                    ad_group = lookup.ad_group(campaign, ad_group_name)
                    if ad_group is None:
                        result.add_warning(
                            f'Ad group "{ad_group_name}" not found in campaign "{campaign_name}"', row=row_num,
                        )
                        continue
                    entity_type, entity_id = "ad_group", ad_group.id
                else:
                    entity_type, entity_id = "campaign", campaign.id

                self.db.add(PerformanceRecord(
                    id=generate_id(),
                    entity_type=entity_type,
                    entity_id=entity_id,
                    date_range_start=date_range_start,
                    date_range_end=date_range_end,
                    **metrics,
                ))
                result.stats.performance_records_created += 1

        self._run_in_transaction(record, result, insert_metrics)
        return result

    def import_search_terms(self, content: Content, filename: str,
                            date_range_start: date, date_range_end: date) -> ImportResult:
        """Store search term rows for existing campaign / ad group pairs."""
        result = ImportResult()
        record = self._start_record(result, filename, "csv", len(content), "search_terms")
        if record is None:
            return result
        log.info(f"Search terms import {record.id}: {filename} ({date_range_start} to {date_range_end})")

        def insert_terms():
            _check_date_range(date_range_start, date_range_end)
            headers, rows = _read_rows(content, detect_header=True)
            schema = ColumnSchema.from_headers(headers)
            missing = [f for f in ("search_term", "campaign_name", "ad_group_name") if not schema.has(f)]
            if missing:
                raise ImportAbortedError(f"Required columns not found in CSV header: {', '.join(missing)}")

            lookup = _EntityLookup(self.db)
            for row_num, row in enumerate(rows, start=1):
                campaign_name = schema.get(row, "campaign_name")
                if _is_summary_row(campaign_name):
                    continue
                search_term = schema.get(row, "search_term")
                ad_group_name = schema.get(row, "ad_group_name")
                if not search_term or not campaign_name or not ad_group_name:
                    result.add_warning("Row missing search term, campaign or ad group, skipping", row=row_num)
                    continue

                campaign = lookup.campaign(campaign_name)
                ad_group = lookup.ad_group(campaign, ad_group_name) if campaign else None
                if ad_group is None:
                    result.add_warning(
                        f'Ad group "{campaign_name} / {ad_group_name}" not found in database', row=row_num,
                    )
                    continue

                try:
                    metrics = {
                        "impressions": parse_int(schema.get(row, "impressions"), "impressions"),
                        "clicks": parse_int(schema.get(row, "clicks"), "clicks"),
                        "cost": parse_float(schema.get(row, "cost"), "cost"),
                        "conversions": parse_float(schema.get(row, "conversions"), "conversions"),
                    }
                except RowParseError as e:
                    result.add_error(f"Error parsing row: {e}", row=row_num, field=e.field, value=e.value)
                    continue

                self.db.add(SearchTerm(
                    id=generate_id(),
                    campaign_id=campaign.id,
                    ad_group_id=ad_group.id,
                    search_term=search_term,
                    match_type=parse_match_type(schema.get(row, "match_type")),
                    date_range_start=date_range_start,
                    date_range_end=date_range_end,
                    **metrics,
                ))
                result.stats.search_terms_created += 1

        self._run_in_transaction(record, result, insert_terms)
        return result

    # ── History ──────────────────────────────────────────────────────

    def list_imports(self, limit: int = 50) -> List[Dict]:
        records = (
            self.db.query(ImportRecord)
            .order_by(ImportRecord.created_at.desc())
            .limit(limit)
            .all()
        )
        return [_record_dict(r, include_errors=False) for r in records]

    def get_import(self, import_id: str) -> Optional[Dict]:
        record = self.db.get(ImportRecord, import_id)
        return _record_dict(record, include_errors=True) if record else None

    def default_options(self) -> ImportOptions:
        return ImportOptions(
            update_existing=self.settings.import_default_update_existing,
            create_snapshot=self.settings.import_default_create_snapshot,
        )

    # ── Transaction handling ─────────────────────────────────────────

    def _start_record(self, result: ImportResult, filename: str, file_type: str,
                      file_size: int, import_type: str) -> Optional[ImportRecord]:
        """Commit a `processing` record. Returns None (result holds the error) if the store is down."""
        record = ImportRecord(
            id=generate_id(),
            filename=filename,
            file_type=file_type,
            file_size=file_size,
            import_type=import_type,
            status="processing",
            errors=[],
        )
        try:
            self.db.add(record)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            error_msg = str(exc)[:500]
            log.error(f"Could not start import of {filename}: {error_msg}")
            result.add_error(f"Fatal import error: {error_msg}")
            return None
        result.import_id = record.id
        return record

    def _run_in_transaction(self, record: ImportRecord, result: ImportResult, work: Callable[[], None]) -> None:
        """
        Run `work` and commit its writes together with the completed record.

        Any exception rolls everything back; the record is then marked failed
        in a separate commit and the counters are reported as zero.
        """
        record_id, filename = record.id, record.filename
        try:
            work()
            self._finish_record(record, "completed", result)
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            if isinstance(exc, ImportAbortedError):
                message = str(exc)
            else:
                message = f"Fatal import error: {str(exc)[:500]}"
            log.error(f"  FAILED import {record_id} ({filename}): {message}")
            result.add_error(message)
            result.reset_counts()
            self._mark_failed(record_id, result)
            return

        log.info(
            f"  OK import {record_id} ({filename}): "
            f"{result.stats.campaigns_created} campaigns, {result.stats.ad_groups_created} ad groups, "
            f"{result.stats.ads_created} ads, {result.stats.keywords_created} keywords created; "
            f"{len(result.errors)} errors, {len(result.warnings)} warnings"
        )

    def _finish_record(self, record: ImportRecord, status: str, result: ImportResult) -> None:
        record.status = status
        record.entities_imported = result.stats.entities_imported if status == "completed" else 0
        record.errors = [issue.model_dump() for issue in result.errors]
        record.completed_at = datetime.utcnow()

    def _mark_failed(self, record_id: str, result: ImportResult) -> None:
        try:
            record = self.db.get(ImportRecord, record_id)
            if record is None:
                log.error(f"  Import record {record_id} vanished before it could be marked failed")
                return
            self._finish_record(record, "failed", result)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.error(f"  Could not mark import {record_id} as failed: {str(exc)[:500]}")


# ── Module helpers ───────────────────────────────────────────────────

class _EntityLookup:
    """Name → entity cache for report imports."""

    def __init__(self, db: Session):
        self.db = db
        self._campaigns: Dict[str, Optional[Campaign]] = {}
        self._ad_groups: Dict[Tuple[str, str], Optional[AdGroup]] = {}

    def campaign(self, name: str) -> Optional[Campaign]:
        if name not in self._campaigns:
            self._campaigns[name] = self.db.query(Campaign).filter(Campaign.name == name).first()
        return self._campaigns[name]

    def ad_group(self, campaign: Campaign, name: str) -> Optional[AdGroup]:
        key = (campaign.id, name)
        if key not in self._ad_groups:
            self._ad_groups[key] = self.db.query(AdGroup).filter(
                AdGroup.campaign_id == campaign.id,
                AdGroup.name == name,
            ).first()
        return self._ad_groups[key]


def _performance_metrics(row: Mapping[str, str], schema: ColumnSchema) -> Dict:
    return {
        "impressions": parse_int(schema.get(row, "impressions"), "impressions"),
        "clicks": parse_int(schema.get(row, "clicks"), "clicks"),
        "cost": parse_float(schema.get(row, "cost"), "cost"),
        "conversions": parse_float(schema.get(row, "conversions"), "conversions"),
        "ctr": parse_float(schema.get(row, "ctr"), "ctr"),
        "cpc": parse_float(schema.get(row, "avg_cpc"), "avg_cpc"),
    }


def _check_date_range(start: date, end: date) -> None:
    if start > end:
        raise ImportAbortedError(f"Date range start {start} is after end {end}")


def _record_dict(record: ImportRecord, include_errors: bool) -> Dict:
    data = {
        "id": record.id,
        "filename": record.filename,
        "file_type": record.file_type,
        "file_size": record.file_size,
        "import_type": record.import_type,
        "status": record.status,
        "entities_imported": record.entities_imported,
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "completed_at": record.completed_at.isoformat() if record.completed_at else None,
    }
    if include_errors:
        data["errors"] = record.errors or []
    return data
