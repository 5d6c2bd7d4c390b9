"""
Import Record: one row per import invocation, for history and auditing.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime

from campaign_builder.models.base import Base
from campaign_builder.utils.helpers import generate_id


IMPORT_TYPES = ("editor_export", "performance_report", "search_terms")


class ImportRecord(Base):
    __tablename__ = "imports"

    id = Column(String(32), primary_key=True, default=generate_id)
    filename = Column(String, nullable=False, index=True)
    file_type = Column(String(10), nullable=False)                 # csv | zip
    file_size = Column(Integer, nullable=False, default=0)
    import_type = Column(String(30), nullable=False)               # editor_export | performance_report | search_terms
    status = Column(String(20), nullable=False, default="processing", index=True)  # processing | completed | failed
    entities_imported = Column(Integer, default=0)
    errors = Column(JSON, nullable=False, default=list)            # [{row, field, value, message, source}]
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<ImportRecord {self.filename} [{self.status}]>"
