"""
Performance report models

Metrics imported from Google Ads UI reports, attached to existing
campaigns / ad groups for a reporting date range.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Date, ForeignKey
from datetime import datetime

from campaign_builder.models.base import Base
from campaign_builder.utils.helpers import generate_id


class PerformanceRecord(Base):
    """Campaign or ad group metrics for one date range"""
    __tablename__ = "performance_data"

    id = Column(String(32), primary_key=True, default=generate_id)
    entity_type = Column(String(20), nullable=False)  # campaign | ad_group
    entity_id = Column(String(32), nullable=False)

    date_range_start = Column(Date, nullable=False, index=True)
    date_range_end = Column(Date, nullable=False)

    impressions = Column(Integer, default=0)
    clicks = Column(Integer, default=0)
    cost = Column(Float, default=0.0)
    conversions = Column(Float, default=0.0)
    ctr = Column(Float, default=0.0)  # Percent, as exported
    cpc = Column(Float, default=0.0)  # Average cost per click

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<PerformanceRecord {self.entity_type}:{self.entity_id} {self.date_range_start}>"


class SearchTerm(Base):
    """Search term report row"""
    __tablename__ = "search_terms"

    id = Column(String(32), primary_key=True, default=generate_id)
    campaign_id = Column(String(32), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    ad_group_id = Column(String(32), ForeignKey("ad_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    search_term = Column(String, nullable=False)
    match_type = Column(String(10), nullable=False, default="broad")

    impressions = Column(Integer, default=0)
    clicks = Column(Integer, default=0)
    cost = Column(Float, default=0.0)
    conversions = Column(Float, default=0.0)

    date_range_start = Column(Date, nullable=False)
    date_range_end = Column(Date, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<SearchTerm '{self.search_term}' [{self.match_type}]>"
