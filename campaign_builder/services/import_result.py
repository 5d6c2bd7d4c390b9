"""
Import result model: counters, errors and warnings returned to the caller.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field


class ImportIssue(BaseModel):
    """One error or warning. `row` is the 1-based data row when known."""
    message: str
    row: Optional[int] = None
    field: Optional[str] = None
    value: Optional[str] = None
    source: Optional[str] = None  # Archive entry name


class ImportStats(BaseModel):
    campaigns_created: int = 0
    campaigns_updated: int = 0
    ad_groups_created: int = 0
    ad_groups_updated: int = 0
    ads_created: int = 0
    ads_updated: int = 0
    keywords_created: int = 0
    performance_records_created: int = 0
    search_terms_created: int = 0
    errors_count: int = 0

    @property
    def entities_imported(self) -> int:
        return (
            self.campaigns_created + self.ad_groups_created + self.ads_created
            + self.keywords_created + self.performance_records_created
            + self.search_terms_created
        )


class ImportResult(BaseModel):
    import_id: Optional[str] = None
    stats: ImportStats = Field(default_factory=ImportStats)
    errors: List[ImportIssue] = Field(default_factory=list)
    warnings: List[ImportIssue] = Field(default_factory=list)

    @computed_field
    @property
    def success(self) -> bool:
        return not self.errors

    def add_error(self, message: str, row: Optional[int] = None, field: Optional[str] = None,
                  value: Optional[str] = None) -> None:
        self.errors.append(ImportIssue(message=message, row=row, field=field, value=value))
        self.stats.errors_count = len(self.errors)

    def add_warning(self, message: str, row: Optional[int] = None) -> None:
        self.warnings.append(ImportIssue(message=message, row=row))

    def reset_counts(self) -> None:
        """Zero entity counters after a rollback; errors_count is kept."""
        self.stats = ImportStats(errors_count=len(self.errors))

    def merge(self, other: "ImportResult", source: str) -> None:
        """Fold one archive entry's result into this aggregate."""
        for name in ImportStats.model_fields:
            setattr(self.stats, name, getattr(self.stats, name) + getattr(other.stats, name))
        self.errors.extend(issue.model_copy(update={"source": source}) for issue in other.errors)
        self.warnings.extend(issue.model_copy(update={"source": source}) for issue in other.warnings)
        if self.import_id is None:
            self.import_id = other.import_id
